from __future__ import annotations

import importlib
import inspect
import logging
import pkgutil
from types import ModuleType
from typing import Callable, Iterable, List, Set, get_type_hints

from .client import BitbucketClient, BitbucketMCPError
from .config import Config
from .observability import log_event

log = logging.getLogger("bitbucket_mcp.core.registry")

TOOL_NAME_PREFIX = "bb_"
INJECTED_PARAMS = ("client", "config")


# --- Discovery helpers ----------------------------------------------------- #


def discover_tool_modules(
    package_name: str = "bitbucket_mcp.core.tools",
) -> List[ModuleType]:
    """Import all modules under the given tools package, skipping failures."""
    modules: List[ModuleType] = []
    base_pkg = importlib.import_module(package_name)

    for finder in pkgutil.iter_modules(base_pkg.__path__, base_pkg.__name__ + "."):
        name = finder.name
        if name.rsplit(".", 1)[-1].startswith("_"):
            continue
        try:
            module = importlib.import_module(name)
            modules.append(module)
        except Exception as exc:  # pragma: no cover - logged, not fatal
            log.error("Failed importing tool module %s: %s", name, exc)
            continue

    return modules


def iter_tool_functions(module: ModuleType) -> Iterable[Callable]:
    """Yield functions that satisfy the tool convention."""
    for _, func in inspect.getmembers(module, inspect.iscoroutinefunction):
        if func.__name__.startswith("_"):
            continue
        if func.__module__ != module.__name__:
            # Skip imported functions
            continue

        params = list(inspect.signature(func).parameters.values())
        if not params or params[0].name != "client":
            log.debug(
                "Skipping %s.%s: first parameter must be 'client'",
                module.__name__,
                func.__name__,
            )
            continue

        yield func


# --- Wrapping / registration ---------------------------------------------- #


def _wrap_tool(func: Callable, client: BitbucketClient, config: Config) -> Callable:
    """
    Return a wrapper that injects client (and config when requested) and hides
    them from the signature FastMCP builds the tool schema from.

    Safety and API failures are logged here and re-raised unchanged; the MCP
    server turns them into an error result for the caller.
    """
    original_sig = inspect.signature(func)
    type_hints = get_type_hints(func)
    wants_config = "config" in original_sig.parameters

    new_params = []
    for name, param in original_sig.parameters.items():
        if name in INJECTED_PARAMS:
            continue
        ann = type_hints.get(name, param.annotation)
        new_params.append(param.replace(annotation=ann))

    return_ann = type_hints.get("return", original_sig.return_annotation)
    new_sig = inspect.Signature(parameters=new_params, return_annotation=return_ann)

    async def wrapped(*args, **kwargs):
        injected = (client, config) if wants_config else (client,)
        try:
            return await func(*injected, *args, **kwargs)
        except BitbucketMCPError as exc:
            log_event(
                "tool.failed",
                log,
                level=logging.WARNING,
                tool=func.__name__,
                error_type=type(exc).__name__,
                status_code=getattr(exc, "status_code", None),
            )
            raise

    wrapped.__name__ = func.__name__
    wrapped.__doc__ = func.__doc__
    wrapped.__module__ = func.__module__
    wrapped.__signature__ = new_sig  # type: ignore[attr-defined]
    return wrapped


def register_discovered_tools(
    app,
    client: BitbucketClient,
    config: Config,
    modules: List[ModuleType] | None = None,
    *,
    prefix: str = TOOL_NAME_PREFIX,
) -> List[str]:
    """Register discovered tools on an app that exposes a .tool decorator."""
    if not hasattr(app, "tool"):
        raise TypeError("app must expose a 'tool' decorator")

    modules = modules if modules is not None else discover_tool_modules()
    seen_names: Set[str] = set()

    for module in modules:
        for func in iter_tool_functions(module):
            name = f"{prefix}{func.__name__}"
            if name in seen_names:
                raise ValueError(f"Duplicate tool name detected: {name}")

            wrapped = _wrap_tool(func, client, config)
            app.tool(name=name)(wrapped)
            seen_names.add(name)
            log.info("Registered tool: %s (%s)", name, module.__name__)

    return sorted(seen_names)


__all__ = [
    "TOOL_NAME_PREFIX",
    "discover_tool_modules",
    "iter_tool_functions",
    "register_discovered_tools",
]
