import httpx
import json
import logging
import pytest
import random
from markovtext import (
    FetchError,
    HTTPTextSource,
    LocalTextSource,
    MalformedResponseError,
)
from markovtext.sources import parse_texts

URL = "https://example.com/api/markov-text"


@pytest.mark.asyncio
async def test_fetch_batch(httpx_mock):
    httpx_mock.add_response(
        url=URL + "?count=3",
        json={
            "texts": [
                {"text": "first line of the corpus", "id": 1},
                {"text": "  second line  "},
                {"text": "third line"},
            ],
            "stats": {"count": 3},
        },
    )
    source = HTTPTextSource(URL)
    lines = await source.fetch_batch(3)
    assert lines == ["first line of the corpus", "second line", "third line"]
    await source.aclose()


@pytest.mark.asyncio
async def test_fetch_batch_skips_malformed_records(httpx_mock, caplog):
    httpx_mock.add_response(
        url=URL + "?count=5",
        json={
            "texts": [
                {"text": "good one"},
                {"txt": "wrong key"},
                {"text": 42},
                "not an object",
                {"text": "   "},
                {"text": "good two"},
            ]
        },
    )
    source = HTTPTextSource(URL)
    with caplog.at_level(logging.WARNING, logger="markovtext.http"):
        lines = await source.fetch_batch(5)
    assert lines == ["good one", "good two"]
    skipped = [r for r in caplog.records if "Skipping malformed record" in r.message]
    assert len(skipped) == 3
    await source.aclose()


@pytest.mark.asyncio
async def test_fetch_single_text_payload(httpx_mock):
    httpx_mock.add_response(
        url=URL + "?count=20",
        json={
            "text": "line one of the text\n\nline two of the text\n",
            "stats": {"lines": 2, "characters": 41},
        },
    )
    source = HTTPTextSource(URL)
    assert await source.fetch_batch() == [
        "line one of the text",
        "line two of the text",
    ]
    await source.aclose()


@pytest.mark.asyncio
@pytest.mark.parametrize("requested,sent", [(500, 50), (0, 1), (7, 7)])
async def test_fetch_batch_clamps_count(httpx_mock, requested, sent):
    httpx_mock.add_response(url=f"{URL}?count={sent}", json={"texts": []})
    source = HTTPTextSource(URL)
    assert await source.fetch_batch(requested) == []
    assert httpx_mock.get_request().url.params["count"] == str(sent)
    await source.aclose()


@pytest.mark.asyncio
async def test_fetch_batch_http_error(httpx_mock):
    httpx_mock.add_response(url=URL + "?count=5", status_code=500, text="oops")
    source = HTTPTextSource(URL)
    with pytest.raises(FetchError) as ex:
        await source.fetch_batch(5)
    assert not isinstance(ex.value, MalformedResponseError)
    assert "answered 500" in str(ex.value)
    await source.aclose()


@pytest.mark.asyncio
async def test_fetch_batch_connection_error(httpx_mock):
    httpx_mock.add_exception(httpx.ConnectError("Connection refused"))
    source = HTTPTextSource(URL)
    with pytest.raises(FetchError) as ex:
        await source.fetch_batch(5)
    assert "Connection refused" in str(ex.value)
    await source.aclose()


@pytest.mark.asyncio
async def test_fetch_batch_invalid_json(httpx_mock):
    httpx_mock.add_response(url=URL + "?count=5", text="<html>not json</html>")
    source = HTTPTextSource(URL)
    with pytest.raises(MalformedResponseError):
        await source.fetch_batch(5)
    await source.aclose()


@pytest.mark.asyncio
async def test_fetch_batch_error_field(httpx_mock):
    httpx_mock.add_response(url=URL + "?count=5", json={"error": "Database down"})
    source = HTTPTextSource(URL)
    with pytest.raises(FetchError) as ex:
        await source.fetch_batch(5)
    assert "Database down" in str(ex.value)
    await source.aclose()


@pytest.mark.parametrize(
    "payload,message",
    [
        ({"stats": {}}, "neither a text nor a texts field"),
        ({"texts": "nope"}, "is not a list"),
        ({"text": ["nope"]}, "is not a string"),
        (["a", "list"], "Expected a JSON object"),
    ],
)
def test_parse_texts_malformed(payload, message):
    with pytest.raises(MalformedResponseError) as ex:
        parse_texts(payload, URL)
    assert message in str(ex.value)


@pytest.mark.asyncio
async def test_check_head(httpx_mock):
    httpx_mock.add_response(url=URL, method="HEAD")
    source = HTTPTextSource(URL)
    assert await source.check() is True
    await source.aclose()


@pytest.mark.asyncio
async def test_check_falls_back_to_get_on_405(httpx_mock):
    httpx_mock.add_response(url=URL, method="HEAD", status_code=405)
    httpx_mock.add_response(url=URL, method="GET", json={"text": "hi"})
    source = HTTPTextSource(URL)
    assert await source.check() is True
    assert [r.method for r in httpx_mock.get_requests()] == ["HEAD", "GET"]
    await source.aclose()


@pytest.mark.asyncio
async def test_check_unavailable(httpx_mock):
    httpx_mock.add_response(url=URL, method="HEAD", status_code=503)
    source = HTTPTextSource(URL)
    assert await source.check() is False
    await source.aclose()


@pytest.mark.asyncio
async def test_injected_client_is_not_closed(httpx_mock):
    httpx_mock.add_response(url=URL + "?count=1", json={"texts": [{"text": "hi"}]})
    async with httpx.AsyncClient() as client:
        source = HTTPTextSource(URL, client=client)
        assert await source.fetch_batch(1) == ["hi"]
        await source.aclose()
        assert not client.is_closed


@pytest.mark.asyncio
async def test_local_source_json_records(tmpdir):
    path = tmpdir / "markov-texts.json"
    path.write_text(
        json.dumps(
            {
                "texts": [
                    {"text_content": "one from the local dump"},
                    {"text_content": "two from the local dump"},
                    {"text": "three from the local dump"},
                ]
            }
        ),
        "utf-8",
    )
    source = LocalTextSource(str(path), rng=random.Random(0))
    assert await source.check()
    lines = await source.fetch_batch(2)
    assert len(lines) == 2
    assert set(lines) <= {
        "one from the local dump",
        "two from the local dump",
        "three from the local dump",
    }
    assert sorted(await source.fetch_batch(10)) == [
        "one from the local dump",
        "three from the local dump",
        "two from the local dump",
    ]


@pytest.mark.asyncio
async def test_local_source_json_list_and_text_file(tmpdir):
    json_path = tmpdir / "texts.json"
    json_path.write_text(json.dumps(["alpha beta", "gamma delta"]), "utf-8")
    assert sorted(await LocalTextSource(str(json_path)).fetch_batch(5)) == [
        "alpha beta",
        "gamma delta",
    ]
    txt_path = tmpdir / "corpus.txt"
    txt_path.write_text("first line\n\n   \nsecond line\n", "utf-8")
    assert sorted(await LocalTextSource(str(txt_path)).fetch_batch(5)) == [
        "first line",
        "second line",
    ]


@pytest.mark.asyncio
async def test_local_source_errors(tmpdir):
    missing = LocalTextSource(str(tmpdir / "missing.txt"))
    assert await missing.check() is False
    with pytest.raises(FetchError):
        await missing.fetch_batch(1)
    broken = tmpdir / "broken.json"
    broken.write_text("{not json", "utf-8")
    with pytest.raises(MalformedResponseError):
        await LocalTextSource(str(broken)).fetch_batch(1)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload,lines,exhausted",
    [
        ({"texts": [{"text": "a line"}]}, ["a line"], False),
        ({"texts": [{"txt": "x"}, {"text": 5}]}, [], False),
        ({"texts": []}, [], True),
        ({"text": "  \n "}, [], True),
        ({"text": "one\ntwo"}, ["one", "two"], False),
    ],
)
async def test_fetch_batch_reports_exhaustion(httpx_mock, payload, lines, exhausted):
    httpx_mock.add_response(url=URL + "?count=5", json=payload)
    source = HTTPTextSource(URL)
    assert not source.exhausted
    assert await source.fetch_batch(5) == lines
    assert source.exhausted is exhausted
    await source.aclose()


@pytest.mark.asyncio
async def test_local_source_exhaustion(tmpdir):
    empty = tmpdir / "empty.txt"
    empty.write_text("\n\n", "utf-8")
    source = LocalTextSource(str(empty))
    assert await source.fetch_batch(5) == []
    assert source.exhausted
    full = tmpdir / "full.txt"
    full.write_text("a line\n", "utf-8")
    source = LocalTextSource(str(full))
    assert await source.fetch_batch(5) == ["a line"]
    assert not source.exhausted
