import random
from typing import List, Optional

from .errors import EmptyModelError
from .model import KEY_SEPARATOR, MarkovModel, ngram_key

DEFAULT_MAX_TOKENS = 300
SENTENCE_ENDINGS = (".", "!", "?")


def generate_one(
    model: MarkovModel,
    rng: Optional[random.Random] = None,
    max_tokens: int = DEFAULT_MAX_TOKENS,
    max_sentences: Optional[int] = None,
) -> str:
    """
    Random walk from a random beginning until the current n-gram has no
    successors, ``max_tokens`` tokens have been emitted, or ``max_sentences``
    sentence-ending words have been produced.
    """
    if model.is_empty:
        raise EmptyModelError("No corpus loaded: the model has no beginnings")
    rng = rng or random.Random()
    # The seed alone is model.order tokens long
    limit = max(max_tokens, model.order)

    tokens = rng.choice(model.beginnings).split(KEY_SEPARATOR)
    sentences = 0
    while len(tokens) < limit:
        options = model.successors(ngram_key(tokens[-model.order :]))
        if not options:
            break
        word = rng.choice(options)
        tokens.append(word)
        if max_sentences and word.endswith(SENTENCE_ENDINGS):
            sentences += 1
            if sentences >= max_sentences:
                break
    return " ".join(tokens)


def generate_many(
    model: MarkovModel,
    count: int,
    rng: Optional[random.Random] = None,
    max_tokens: int = DEFAULT_MAX_TOKENS,
    max_sentences: Optional[int] = None,
) -> List[str]:
    "Generate ``count`` lines - identical lines are not filtered out"
    rng = rng or random.Random()
    return [
        generate_one(
            model, rng=rng, max_tokens=max_tokens, max_sentences=max_sentences
        )
        for _ in range(count)
    ]
