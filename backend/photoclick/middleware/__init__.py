# Middleware package init
"""
PhotoClick Relay — Middleware Package
=======================================

Middleware Chain (order matters!):
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Request ID first: every later log line can carry it
    2. Logging: records status and duration with the request ID
    3. GZip: data-URI responses are large
    4. CORS last: stamps headers on handler and exception-handler responses,
       and short-circuits OPTIONS before routing
"""
