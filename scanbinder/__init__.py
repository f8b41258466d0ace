"""ScanBinder: collectible card scanning, catalog lookup and collection tracking."""
