# Services package init
"""
PhotoClick Relay — Services Layer
===================================

What:  Request-translation logic sitting between routes (HTTP) and Google's APIs.
Why:   Routes handle HTTP; services handle validation and provider shaping.

Service Inventory:
    - ContentProvider (abstract): "generate content from parts" contract
    - GeminiContentProvider: Concrete implementation on the google-genai SDK
    - IdentityVerifier (abstract): "verify token against audience" contract
    - GoogleIdentityVerifier: Concrete implementation on google-auth
    - ActionDispatcher: Maps (action, payload) to one provider call and one result
"""
