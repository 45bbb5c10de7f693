"""Stilo — live-reload development server for stylesheet samples.

Serves a directory of sample documents, watches it, recompiles the
stylesheet when its sources change, and pushes updates to every open
browser over a Server-Sent Events channel.

Quick start::

    import stilo

    stilo.dev("my-project/")      # serve samples/ with live reload
    stilo.build("my-project/")    # compile the stylesheet once

"""

__version__ = "0.1.0"
__all__ = [
    "StiloConfig",
    "__version__",
    "build",
    "create_app",
    "dev",
]


def __getattr__(name: str) -> object:
    """Lazy imports for the public API.

    Keeps ``import stilo`` fast; chirp and watchfiles load on first use.
    """
    if name == "StiloConfig":
        from stilo.config import StiloConfig

        return StiloConfig

    if name == "dev":
        from stilo.app import dev

        return dev

    if name == "build":
        from stilo.app import build

        return build

    if name == "create_app":
        from stilo.app import create_app

        return create_app

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
