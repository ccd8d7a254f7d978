from .hookspecs import hookimpl
from .errors import (
    EmptyModelError,
    FetchError,
    MalformedResponseError,
    MarkovTextError,
    QueueClosedError,
)
from .generator import generate_many, generate_one
from .model import MarkovModel, build, tokenize
from .options import GenerationOptions
from .queue import GenerationQueue, QueueState
from .sources import HTTPTextSource, LocalTextSource, TextSource
from .utils import has_plugin_prefix
from .plugins import pm, load_plugins
import click
import json
import os
import pathlib
from typing import Any, Callable, Dict, Optional

__all__ = [
    "build",
    "clear_setting",
    "EmptyModelError",
    "FetchError",
    "generate_many",
    "generate_one",
    "GenerationOptions",
    "GenerationQueue",
    "get_settings",
    "get_source",
    "get_source_loaders",
    "hookimpl",
    "HTTPTextSource",
    "LocalTextSource",
    "MalformedResponseError",
    "MarkovModel",
    "MarkovTextError",
    "QueueClosedError",
    "QueueState",
    "resolve_options",
    "set_setting",
    "TextSource",
    "tokenize",
    "UnknownSourceError",
    "user_dir",
]


class UnknownSourceError(KeyError):
    pass


def get_plugins(all=False):
    plugins = []
    load_plugins()
    plugin_to_distinfo = dict(pm.list_plugin_distinfo())
    for plugin in pm.get_plugins():
        if not all and plugin.__name__.startswith("markovtext.default_plugins."):
            continue
        plugin_info = {
            "name": plugin.__name__,
            "hooks": [h.name for h in pm.get_hookcallers(plugin)],
        }
        distinfo = plugin_to_distinfo.get(plugin)
        if distinfo:
            plugin_info["version"] = distinfo.version
            plugin_info["name"] = (
                getattr(distinfo, "name", None) or distinfo.project_name
            )
        plugins.append(plugin_info)
    return plugins


def get_source_loaders() -> Dict[str, Callable[[str], TextSource]]:
    "Get text source loaders registered by plugins, keyed by prefix"
    load_plugins()
    loaders: Dict[str, Callable[[str], TextSource]] = {}

    def register(prefix, loader):
        suffix = 0
        prefix_to_try = prefix
        while prefix_to_try in loaders:
            suffix += 1
            prefix_to_try = f"{prefix}_{suffix}"
        loaders[prefix_to_try] = loader

    pm.hook.register_text_sources(register=register)
    return loaders


def get_source(spec: str) -> TextSource:
    """
    Resolve a source string to a TextSource:

    - http:// and https:// URLs use HTTPTextSource
    - prefix:rest uses the loader a plugin registered for that prefix
    - paths to existing files use LocalTextSource
    """
    if spec.startswith("http://") or spec.startswith("https://"):
        return HTTPTextSource(spec)
    if has_plugin_prefix(spec) and not pathlib.Path(spec).exists():
        prefix, rest = spec.split(":", 1)
        loaders = get_source_loaders()
        if prefix not in loaders:
            raise UnknownSourceError("Unknown source prefix: {}".format(prefix))
        return loaders[prefix](rest)
    if pathlib.Path(spec).is_file():
        return LocalTextSource(spec)
    raise UnknownSourceError("Unknown source: {}".format(spec))


def user_dir():
    markovtext_user_path = os.environ.get("MARKOVTEXT_USER_PATH")
    if markovtext_user_path:
        path = pathlib.Path(markovtext_user_path)
    else:
        path = pathlib.Path(click.get_app_dir("markovtext"))
    path.mkdir(exist_ok=True, parents=True)
    return path


def _settings_path():
    return user_dir() / "settings.json"


def get_settings() -> dict:
    "Stored default generation options"
    path = _settings_path()
    if not path.exists():
        return {}
    try:
        return json.loads(path.read_text())
    except json.JSONDecodeError:
        return {}


def set_setting(key: str, value: Any) -> None:
    """
    Store a default generation option.

    Raises pydantic.ValidationError if the key or value is not valid.
    """
    settings = get_settings()
    settings[key] = value
    # Validate the combined settings, store the coerced value
    options = GenerationOptions(**settings)
    settings[key] = getattr(options, key)
    _settings_path().write_text(json.dumps(settings, indent=2))


def clear_setting(key: str) -> bool:
    "Remove a stored option, returning False if it was not set"
    settings = get_settings()
    if key not in settings:
        return False
    del settings[key]
    _settings_path().write_text(json.dumps(settings, indent=2))
    return True


def resolve_options(**overrides: Optional[Any]) -> GenerationOptions:
    "Stored settings overlaid with any overrides that are not None"
    options = get_settings()
    options.update({key: value for key, value in overrides.items() if value is not None})
    return GenerationOptions(**options)
