from impactdeck.security.deck_token import (
    DeckTokenConfigError,
    DeckTokenSigner,
    current_signer,
    deck_resource,
    init_deck_tokens,
    org_resource,
    site_resource,
)
from impactdeck.security.headers import install_security_middleware
from impactdeck.security.rate_limit import RateLimiter, current_limiter, init_rate_limiter

__all__ = [
    "DeckTokenConfigError",
    "DeckTokenSigner",
    "RateLimiter",
    "current_limiter",
    "current_signer",
    "deck_resource",
    "init_deck_tokens",
    "init_rate_limiter",
    "install_security_middleware",
    "org_resource",
    "site_resource",
]
