from pydantic import BaseModel, ConfigDict, Field

SETTINGS_KEY = "appSettings"


class AppSettings(BaseModel):
    """User-facing toggles persisted in the local settings store."""

    model_config = ConfigDict(populate_by_name=True)

    auto_save: bool = Field(default=True, alias="autoSave")
    notifications: bool = Field(default=True)
    dark_mode: bool = Field(default=False, alias="darkMode")
    high_quality_scan: bool = Field(
        default=True,
        alias="highQualityScan",
        description="Keep full image resolution when preparing scans",
    )
