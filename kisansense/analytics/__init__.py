"""
Price analytics: pure functions, no I/O.

Modules
-------
statistics : moving_average(), volatility(), linear_regression_forecast(),
             build_forecast() + EmptyInputError / InsufficientDataError.
risk       : classify_risk() + assess_risk() — volatility → Low/Moderate/High.
confidence : confidence_percent() — history length → bounded confidence.
trend      : detect_trend() — trailing-window direction (up/down/flat).
impact     : assess_weather_impact() + estimate_holding_impact().
"""
