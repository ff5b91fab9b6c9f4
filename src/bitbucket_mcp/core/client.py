import logging
import time
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar

import anyio
import httpx
from pydantic import BaseModel, ValidationError

from .config import Config
from .models import Page

T = TypeVar("T", bound=BaseModel)

MAX_ERROR_BODY_CHARS = 2000
TRUNCATION_MARKER = "..."
DEFAULT_MAX_PAGES = 10

Params = Mapping[str, Any]


class BitbucketMCPError(Exception):
    """Base error for everything the core raises on purpose."""


class BitbucketApiError(BitbucketMCPError):
    """
    Transport or protocol failure.

    status_code is 0 for network failures, 408 for a client-side timeout
    and the server's HTTP status otherwise.
    """

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class BitbucketModelValidationError(BitbucketMCPError):
    pass


def _is_absolute(path: str) -> bool:
    return path.startswith("http://") or path.startswith("https://")


def _clean_params(params: Optional[Params]) -> Optional[Dict[str, Any]]:
    if not params:
        return None
    cleaned = {k: v for k, v in params.items() if v is not None}
    return cleaned or None


def _truncate(text: str) -> str:
    if len(text) > MAX_ERROR_BODY_CHARS:
        return text[:MAX_ERROR_BODY_CHARS] + TRUNCATION_MARKER
    return text


class BitbucketClient:
    """
    Shared HTTP client for the Bitbucket Cloud REST API.
    - Handles auth, base URL and timeouts
    - Normalizes every failure into BitbucketApiError
    - Returns decoded JSON, raw text, or pydantic-validated models
    - No policy decisions; callers run the safety checks first
    """

    def __init__(
        self,
        config: Config,
        *,
        logger: Optional[logging.Logger] = None,
        http: Optional[httpx.AsyncClient] = None,
    ):
        base_url = (config.base_url or "").rstrip("/")
        if not base_url:
            raise ValueError("base_url must be provided.")
        if not config.email or not config.api_token:
            raise ValueError("email and api_token must be provided.")

        self.base_url = base_url
        self.timeout_seconds = config.timeout_seconds
        self.log = logger or logging.getLogger("bitbucket_mcp.client")

        # httpx encodes "email:token" into the Basic header for us
        self._auth = httpx.BasicAuth(config.email, config.api_token)

        self._owns_http = http is None
        self.http = http or httpx.AsyncClient(timeout=self.timeout_seconds)

    async def aclose(self) -> None:
        if self._owns_http:
            await self.http.aclose()

    async def __aenter__(self) -> "BitbucketClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def build_url(self, path: str) -> str:
        if _is_absolute(path):
            return path
        return f"{self.base_url}{'' if path.startswith('/') else '/'}{path}"

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Params] = None,
        json: Any = None,
        data: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
        raw: bool = False,
        tool: Optional[str] = None,
    ) -> Any:
        """
        Core request method.
        - Absolute URLs (e.g. a page's "next" link) are used verbatim
        - Raises BitbucketApiError(408) on timeout, (0) on network errors,
          (status) on non-2xx responses with the body capped at 2000 chars
        - Returns decoded JSON for JSON responses, text otherwise
        """
        if json is not None and (data is not None or files is not None):
            raise ValueError("json body and multipart form are mutually exclusive")

        method = method.upper()
        url = self.build_url(path)
        start = time.perf_counter()

        try:
            # httpx times each phase separately; fail_after bounds the whole call
            with anyio.fail_after(self.timeout_seconds):
                resp = await self.http.request(
                    method,
                    url,
                    params=_clean_params(params),
                    json=json,
                    data=data,
                    files=files,
                    auth=self._auth,
                    timeout=self.timeout_seconds,
                )
        except (httpx.TimeoutException, TimeoutError) as exc:
            raise BitbucketApiError(408, "Request timed out") from exc
        except httpx.HTTPError as exc:
            raise BitbucketApiError(0, f"Network error: {exc}") from exc

        duration_ms = int((time.perf_counter() - start) * 1000)
        # never log the auth header
        self.log.debug(
            "bb.request",
            extra={
                "tool": tool,
                "method": method,
                "url": str(resp.request.url),
                "status": resp.status_code,
                "duration_ms": duration_ms,
            },
        )

        if not resp.is_success:
            body = _truncate(resp.text or "")
            raise BitbucketApiError(
                resp.status_code,
                f"Bitbucket API error {resp.status_code}: {body}",
            )

        if raw:
            return resp.text

        content_type = resp.headers.get("content-type", "")
        if "application/json" in content_type and resp.content:
            try:
                return resp.json()
            except ValueError as exc:
                raise BitbucketApiError(
                    0, f"Invalid JSON from {method} {url}: {exc}"
                ) from exc
        return resp.text

    async def get(
        self,
        path: str,
        *,
        params: Optional[Params] = None,
        tool: Optional[str] = None,
    ) -> Any:
        return await self.request("GET", path, params=params, tool=tool)

    async def get_raw(
        self,
        path: str,
        *,
        params: Optional[Params] = None,
        tool: Optional[str] = None,
    ) -> str:
        """GET that always returns the body as text (diffs, file contents)."""
        return await self.request("GET", path, params=params, raw=True, tool=tool)

    async def post(
        self, path: str, *, json: Any = None, tool: Optional[str] = None
    ) -> Any:
        return await self.request("POST", path, json=json, tool=tool)

    async def put(
        self, path: str, *, json: Any = None, tool: Optional[str] = None
    ) -> Any:
        return await self.request("PUT", path, json=json, tool=tool)

    async def delete(self, path: str, *, tool: Optional[str] = None) -> Any:
        return await self.request("DELETE", path, tool=tool)

    async def post_form(
        self,
        path: str,
        *,
        data: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
        tool: Optional[str] = None,
    ) -> Any:
        """
        POST a multipart/form-data payload.
        httpx picks the content type and boundary; nothing is forced here.
        """
        return await self.request("POST", path, data=data, files=files, tool=tool)

    async def request_model(
        self, model: Type[T], method: str, path: str, **kwargs: Any
    ) -> T:
        payload = await self.request(method, path, **kwargs)
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise BitbucketModelValidationError(
                f"Response did not match model {model.__name__}: {exc}"
            ) from exc

    async def get_model(
        self,
        model: Type[T],
        path: str,
        *,
        params: Optional[Params] = None,
        tool: Optional[str] = None,
    ) -> T:
        return await self.request_model(model, "GET", path, params=params, tool=tool)

    async def paginate_all(
        self,
        path: str,
        params: Optional[Params] = None,
        max_pages: int = DEFAULT_MAX_PAGES,
        *,
        model: Optional[Type[T]] = None,
        tool: Optional[str] = None,
    ) -> List[Any]:
        """
        Follow "next" links and return the concatenated page values.

        Pages are fetched one at a time, in order, up to max_pages. The next
        URL already embeds the query string, so params only apply to the
        first request. Any failing page aborts the whole aggregation.
        """
        if max_pages < 1:
            raise ValueError("max_pages must be >= 1")

        values: List[Any] = []
        current: Optional[str] = path
        current_params = params
        page_number = 0

        while current and page_number < max_pages:
            payload = await self.get(current, params=current_params, tool=tool)
            page_number += 1
            page = self._parse_page(payload, model)
            values.extend(page.values)
            self.log.debug(
                "bb.page",
                extra={"tool": tool, "page": page_number, "url": current},
            )
            current = page.next
            current_params = None

        return values

    @staticmethod
    def _parse_page(payload: Any, model: Optional[Type[T]]) -> Page:
        page_type = Page[model] if model is not None else Page[Any]
        try:
            return page_type.model_validate(payload)
        except ValidationError as exc:
            name = model.__name__ if model is not None else "Any"
            raise BitbucketModelValidationError(
                f"Response did not match model Page[{name}]: {exc}"
            ) from exc
