__all__ = [
    "create_access_token",
    "get_current_user",
    "get_optional_user",
    "decode_access_token",
    "oauth2_scheme",
]


def __getattr__(name):
    if name in __all__:
        from . import security as _security
        return getattr(_security, name)
    raise AttributeError(f"module 'carmarket.utils' has no attribute '{name}'")
