from typing import Dict, Iterable, List, Optional, Set

DEFAULT_ORDER = 2
KEY_SEPARATOR = " "


def tokenize(line: str) -> List[str]:
    "Split a corpus line on whitespace, keeping case and punctuation"
    return line.split()


def ngram_key(tokens: Iterable[str]) -> str:
    return KEY_SEPARATOR.join(tokens)


class MarkovModel:
    """
    Word-level n-gram transition table.

    ngrams maps each key of ``order`` space-joined tokens to the list of
    words seen after it. Duplicates are kept, so a word that follows a key
    three times is three times as likely to be picked.

    beginnings holds the distinct keys that started a corpus line, in the
    order they were first seen. Only these can seed a generated sentence.
    """

    def __init__(self, order: int = DEFAULT_ORDER):
        if order < 1:
            raise ValueError("order must be >= 1")
        self.order = order
        self.ngrams: Dict[str, List[str]] = {}
        self.beginnings: List[str] = []
        self._beginning_keys: Set[str] = set()

    def add_line(self, line: str) -> None:
        tokens = tokenize(line)
        # Lines with fewer than order + 1 tokens have no window with a next word
        for i in range(len(tokens) - self.order):
            key = ngram_key(tokens[i : i + self.order])
            self.ngrams.setdefault(key, []).append(tokens[i + self.order])
            if i == 0 and key not in self._beginning_keys:
                self._beginning_keys.add(key)
                self.beginnings.append(key)

    def add_lines(self, lines: Iterable[str]) -> None:
        for line in lines:
            self.add_line(line)

    def successors(self, key: str) -> List[str]:
        return self.ngrams.get(key, [])

    @property
    def is_empty(self) -> bool:
        return not self.beginnings

    def stats(self) -> dict:
        return {
            "order": self.order,
            "ngrams": len(self.ngrams),
            "beginnings": len(self.beginnings),
            "transitions": sum(len(words) for words in self.ngrams.values()),
        }

    def __repr__(self):
        return "<MarkovModel order={} ngrams={} beginnings={}>".format(
            self.order, len(self.ngrams), len(self.beginnings)
        )


def build(
    corpus_lines: Iterable[str],
    order: int = DEFAULT_ORDER,
    model: Optional[MarkovModel] = None,
) -> MarkovModel:
    """
    Build a model from corpus lines, or extend ``model`` in place.

    Short lines are skipped and an empty corpus gives an empty model.
    """
    if model is None:
        model = MarkovModel(order)
    elif model.order != order:
        raise ValueError(
            "Cannot extend a model of order {} with order {}".format(
                model.order, order
            )
        )
    model.add_lines(corpus_lines)
    return model
