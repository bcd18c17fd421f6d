"""
LabelScan: confidence-scored extraction of expiration dates, nutrition facts,
receipt totals and shopping-list items from noisy OCR and voice text.
"""

__version__ = "0.1.0"
