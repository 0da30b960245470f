"""
FastAPI REST Endpoints
======================

HTTP surface of the gateway.

Endpoints:
- GET /api/top-coins: Top coins from the upstream API
- GET /api/market-data: Paged, filtered market listing
- GET /api/coin-info: Coin details and candles for a timeframe
- GET /api/coin-holders: Holder list for a coin
- POST /api/graph: Render a chart through the render subprocess
- GET /health: Health check endpoint
"""
