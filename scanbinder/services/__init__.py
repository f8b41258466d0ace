"""
ScanBinder services.

Name extraction, game classification and the card scanning pipeline.
"""
