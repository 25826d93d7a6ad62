"""
vocabcat: computerized adaptive vocabulary-size testing.
"""

__version__ = "0.1.0"
