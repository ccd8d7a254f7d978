from markovtext import EmptyModelError, MarkovModel, build, generate_many, generate_one
import random
import pytest


EXAMPLE = ["the cat sat on the mat", "the cat ran up the tree"]


def test_generate_one_example_corpus():
    model = build(EXAMPLE, order=2)
    rng = random.Random(0)
    seen = set()
    for _ in range(50):
        line = generate_one(model, rng=rng)
        assert line in EXAMPLE
        seen.add(line)
    assert seen == set(EXAMPLE)


def test_empty_model_raises():
    with pytest.raises(EmptyModelError):
        generate_one(MarkovModel(2))
    with pytest.raises(EmptyModelError):
        generate_many(build(["too short"], order=3), 3)


def test_seeded_generation_is_repeatable(corpus):
    model = build(corpus, order=1)
    first = generate_many(model, 10, rng=random.Random(42))
    second = generate_many(model, 10, rng=random.Random(42))
    assert first == second


def cyclic_model():
    # Every key leads back to itself, so only the cap ends generation
    model = MarkovModel(2)
    model.add_lines(["la la la la"])
    assert model.successors("la la") == ["la", "la"]
    return model


@pytest.mark.parametrize("max_tokens", [1, 2, 3, 10, 300])
def test_generation_stops_at_max_tokens(max_tokens):
    model = cyclic_model()
    for seed in range(5):
        line = generate_one(model, rng=random.Random(seed), max_tokens=max_tokens)
        assert len(line.split()) == max(max_tokens, model.order)


def test_frequency_weighting():
    model = MarkovModel(2)
    model.ngrams["x y"] = ["A", "A", "A", "B"]
    model.beginnings.append("x y")
    rng = random.Random(1234)
    counts = {"A": 0, "B": 0}
    for _ in range(4000):
        line = generate_one(model, rng=rng)
        counts[line.split()[-1]] += 1
    ratio = counts["A"] / counts["B"]
    assert 2.5 < ratio < 3.5


def test_max_sentences():
    model = build(["Hello there. General Kenobi. You are a bold one."], order=1)
    line = generate_one(model, rng=random.Random(3), max_sentences=1)
    assert line == "Hello there."
    line = generate_one(model, rng=random.Random(3), max_sentences=2)
    assert line == "Hello there. General Kenobi."


def test_generate_many_allows_duplicates():
    model = build(["only one way through this line"], order=2)
    lines = generate_many(model, 4, rng=random.Random(0))
    assert lines == ["only one way through this line"] * 4


def test_generate_many_zero():
    model = build(EXAMPLE, order=2)
    assert generate_many(model, 0) == []


def test_generation_does_not_modify_model(corpus):
    model = build(corpus, order=2)
    before = {key: list(words) for key, words in model.ngrams.items()}
    beginnings = list(model.beginnings)
    generate_many(model, 20, rng=random.Random(7))
    assert model.ngrams == before
    assert model.beginnings == beginnings
