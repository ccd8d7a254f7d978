import importlib
from importlib import metadata
import os
import pluggy
import sys
from . import hookspecs

DEFAULT_PLUGINS = ("markovtext.default_plugins.sources",)

pm = pluggy.PluginManager("markovtext")
pm.add_hookspecs(hookspecs)

MARKOVTEXT_LOAD_PLUGINS = os.environ.get("MARKOVTEXT_LOAD_PLUGINS", None)

_loaded = False


def load_plugins():
    global _loaded
    if _loaded:
        return
    _loaded = True
    if not hasattr(sys, "_called_from_test") and MARKOVTEXT_LOAD_PLUGINS is None:
        # Only load plugins if not running tests
        pm.load_setuptools_entrypoints("markovtext")

    # Load any plugins specified in MARKOVTEXT_LOAD_PLUGINS
    if MARKOVTEXT_LOAD_PLUGINS is not None:
        for package_name in [
            name for name in MARKOVTEXT_LOAD_PLUGINS.split(",") if name.strip()
        ]:
            try:
                distribution = metadata.distribution(package_name)
                entry_points = [
                    ep for ep in distribution.entry_points if ep.group == "markovtext"
                ]
                for entry_point in entry_points:
                    mod = entry_point.load()
                    pm.register(mod, name=entry_point.name)
                    # Ensure name can be found in plugin_to_distinfo later:
                    pm._plugin_distinfo.append((mod, distribution))  # type: ignore
            except metadata.PackageNotFoundError:
                sys.stderr.write(f"Plugin {package_name} could not be found\n")

    for plugin in DEFAULT_PLUGINS:
        mod = importlib.import_module(plugin)
        pm.register(mod, plugin)
