from abc import ABC, abstractmethod
import httpx
import json
import logging
import pathlib
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError
import random
from typing import Any, List, Optional, Union

from .errors import FetchError, MalformedResponseError
from .options import DEFAULT_BATCH_SIZE, MAX_BATCH_SIZE

logger = logging.getLogger("markovtext.http")

DEFAULT_TIMEOUT = 10.0


class TextRecord(BaseModel):
    "One record from a texts array - extra fields such as ids or dates are ignored"

    model_config = ConfigDict(strict=True)

    text: str = Field(validation_alias=AliasChoices("text", "text_content"))


def parse_texts(data: Any, origin: str) -> List[str]:
    """
    Turn a decoded text source payload into corpus lines.

    Accepts ``{"texts": [{"text": ...}, ...]}`` (one line per record,
    malformed records are skipped) or ``{"text": "..."}`` (split into its
    non-empty lines).
    """
    if not isinstance(data, dict):
        raise MalformedResponseError(
            "Expected a JSON object from {}, got {}".format(
                origin, type(data).__name__
            )
        )
    if data.get("error"):
        raise FetchError("{} returned an error: {}".format(origin, data["error"]))
    if "texts" in data:
        records = data["texts"]
        if not isinstance(records, list):
            raise MalformedResponseError(
                "The texts field from {} is not a list".format(origin)
            )
        lines = []
        for index, record in enumerate(records):
            try:
                parsed = TextRecord.model_validate(record)
            except ValidationError as ex:
                logger.warning(
                    "Skipping malformed record %s from %s: %s",
                    index,
                    origin,
                    ex.errors()[0]["msg"],
                )
                continue
            text = parsed.text.strip()
            if text:
                lines.append(text)
        return lines
    if "text" in data:
        if not isinstance(data["text"], str):
            raise MalformedResponseError(
                "The text field from {} is not a string".format(origin)
            )
        return [line.strip() for line in data["text"].splitlines() if line.strip()]
    raise MalformedResponseError(
        "Response from {} has neither a text nor a texts field (keys: {})".format(
            origin, ", ".join(sorted(data.keys())) or "none"
        )
    )


def _is_empty_payload(data: dict) -> bool:
    "True if a payload already accepted by parse_texts carried no records at all"
    if "texts" in data:
        return not data["texts"]
    return not data["text"].strip()


class TextSource(ABC):
    "Somewhere corpus lines can be fetched from, a batch at a time"

    # Set by fetch_batch when the source reported it has nothing more to give
    exhausted = False

    @abstractmethod
    async def fetch_batch(self, count: int = DEFAULT_BATCH_SIZE) -> List[str]:
        """
        Return up to ``count`` corpus lines.

        Raises FetchError or MalformedResponseError on failure.
        """
        pass

    @abstractmethod
    async def check(self) -> bool:
        "Cheap reachability check - may raise FetchError"
        pass

    async def aclose(self) -> None:
        pass

    def __str__(self):
        return self.__class__.__name__


class HTTPTextSource(TextSource):
    """
    JSON endpoint returning ``{"texts": [...]}`` for ``?count=n``, or a
    single ``{"text": ...}`` record.
    """

    def __init__(
        self,
        url: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.url = url
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout, follow_redirects=True
            )
        return self._client

    async def _request(self, method: str, **kwargs) -> httpx.Response:
        try:
            response = await self.client.request(method, self.url, **kwargs)
        except httpx.HTTPError as ex:
            raise FetchError("Could not reach {}: {}".format(self.url, ex)) from ex
        logger.debug(
            "%s %s -> %s", method, response.request.url, response.status_code
        )
        return response

    async def fetch_batch(self, count: int = DEFAULT_BATCH_SIZE) -> List[str]:
        count = max(1, min(count, MAX_BATCH_SIZE))
        response = await self._request("GET", params={"count": count})
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as ex:
            raise FetchError(
                "Text source {} answered {}".format(self.url, response.status_code)
            ) from ex
        try:
            data = response.json()
        except ValueError as ex:
            raise MalformedResponseError(
                "Text source {} did not return valid JSON: {}".format(self.url, ex)
            ) from ex
        lines = parse_texts(data, self.url)
        self.exhausted = _is_empty_payload(data)
        logger.info("Fetched %s corpus lines from %s", len(lines), self.url)
        return lines

    async def check(self) -> bool:
        response = await self._request("HEAD")
        if response.status_code == 405:
            # Some serverless handlers only accept GET
            response = await self._request("GET")
        return response.is_success

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    def __str__(self):
        return self.url


class LocalTextSource(TextSource):
    """
    Text source backed by a local file, used in place of the remote endpoint
    during development.

    JSON files hold a texts array of records with a text or text_content
    field (or a plain list of strings), anything else is read as one corpus
    line per non-blank line.
    """

    def __init__(
        self,
        path: Union[str, pathlib.Path],
        rng: Optional[random.Random] = None,
    ):
        self.path = pathlib.Path(path)
        self.rng = rng or random.Random()
        self._lines: Optional[List[str]] = None

    def _load(self) -> List[str]:
        if self._lines is not None:
            return self._lines
        try:
            content = self.path.read_text("utf-8")
        except OSError as ex:
            raise FetchError("Could not read {}: {}".format(self.path, ex)) from ex
        if self.path.suffix.lower() == ".json":
            try:
                data = json.loads(content)
            except json.JSONDecodeError as ex:
                raise MalformedResponseError(
                    "{} is not valid JSON: {}".format(self.path, ex)
                ) from ex
            if isinstance(data, list):
                data = {
                    "texts": [
                        {"text": item} if isinstance(item, str) else item
                        for item in data
                    ]
                }
            self._lines = parse_texts(data, str(self.path))
        else:
            self._lines = [
                line.strip() for line in content.splitlines() if line.strip()
            ]
        return self._lines

    async def fetch_batch(self, count: int = DEFAULT_BATCH_SIZE) -> List[str]:
        lines = self._load()
        self.exhausted = not lines
        return self.rng.sample(lines, min(max(count, 0), len(lines)))

    async def check(self) -> bool:
        return self.path.is_file()

    def __str__(self):
        return str(self.path)
