class MarkovTextError(Exception):
    "Base class for errors raised by markovtext, displayed to the user"
    pass


class EmptyModelError(MarkovTextError):
    "Generation was attempted against a model with no sentence beginnings"
    pass


class FetchError(MarkovTextError):
    "The remote text source could not be reached or returned an error status"
    pass


class MalformedResponseError(FetchError):
    "The text source answered with a payload missing the text or texts field"
    pass


class QueueClosedError(MarkovTextError):
    "The generation queue has been closed and can no longer load batches"
    pass
