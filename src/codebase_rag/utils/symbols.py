"""Encoding-aware console symbols for indexing and search output."""

import sys

# Legacy Windows code pages cannot render the Unicode glyphs below
USE_ASCII_FALLBACKS = bool(
    sys.stderr.encoding and sys.stderr.encoding.lower() in ('cp1252', 'cp850', 'ascii')
)

SYMBOLS = {
    'info': 'i' if USE_ASCII_FALLBACKS else 'ℹ',
    'warning': '!' if USE_ASCII_FALLBACKS else '⚠',
    'error': 'X' if USE_ASCII_FALLBACKS else '✗',
    'success': 'v' if USE_ASCII_FALLBACKS else '✓',
}
