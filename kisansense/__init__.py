"""KisanSense — mandi price forecasting and sell/hold/wait recommendations."""

__version__ = "0.1.0"
