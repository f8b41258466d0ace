from scanbinder.catalogs.adapters import build_adapters, build_catalog_specs
from scanbinder.catalogs.base import (
    CatalogAdapter,
    CatalogQuery,
    CatalogSpec,
    JsonCatalogAdapter,
    normalize_price,
)
from scanbinder.catalogs.resolver import (
    CatalogResolver,
    LookupMode,
    LookupTarget,
    parse_lookup_target,
)

__all__ = [
    "CatalogAdapter",
    "CatalogQuery",
    "CatalogResolver",
    "CatalogSpec",
    "JsonCatalogAdapter",
    "LookupMode",
    "LookupTarget",
    "build_adapters",
    "build_catalog_specs",
    "normalize_price",
    "parse_lookup_target",
]
