# Routes package init
"""
PhotoClick Relay — API Routes Package
=======================================

Route Inventory:
    - relay.py:   POST /api/generate   (every generation action)
    - auth.py:    GET  /api/config     (OAuth client ID for the browser)
                  POST /api/login      (verify a Google ID token)
    - health.py:  GET  /health         (service health check)

Routes stay thin: decode the request, call ActionDispatcher, serialize.
"""
