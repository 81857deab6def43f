"""
Recommendation layer: turns price history into SELL_NOW / HOLD / WAIT / MONITOR.

Modules
-------
rules    : expected-gain and trend policies + empty-input result — pure, total.
advisory : AdvisoryClient (Gemini over httpx), prompt building, response-path
           extraction and action-token parsing.
engine   : RecommendationEngine — advisory call with rule-based fallback,
           plus analyze_market() bundling forecast, risk, trend and weather notes.
"""
