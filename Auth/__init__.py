from .Manager import AuthManager, load_login_config
from .Resolver import ElementResolver, ElementScorer
from .Verifier import LoginVerifier

__all__ = [
    "AuthManager",
    "ElementResolver",
    "ElementScorer",
    "LoginVerifier",
    "load_login_config",
]
