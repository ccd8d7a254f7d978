from markovtext import hookimpl
from markovtext.sources import LocalTextSource


@hookimpl
def register_text_sources(register):
    register("local", LocalTextSource)
