"""Runtime metadata, storage keys, events and dispatch errors for Substrate-style nodes."""

__version__ = "0.1.0"

__all__ = [
    "codec",
    "conversion",
    "dispatch_error",
    "errors",
    "events",
    "metadata",
    "registry",
    "rpc_numbers",
    "rpc_params",
    "storage",
    "types",
    "value",
]