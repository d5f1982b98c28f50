"""Alpha Vantage dashboard proxy: key handling, upstream calls and result normalization."""

__version__ = "0.1.0"
