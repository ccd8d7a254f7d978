from pluggy import HookimplMarker
from pluggy import HookspecMarker

hookspec = HookspecMarker("markovtext")
hookimpl = HookimplMarker("markovtext")


@hookspec
def register_commands(cli):
    """Register additional CLI commands, e.g. 'markovtext mycommand ...'"""


@hookspec
def register_text_sources(register):
    """Register text source loaders for a prefix, e.g. 'local:path/to/texts.json'

    register(prefix, loader) - loader is called with the text after the colon
    and must return an object implementing the TextSource interface.
    """
