from __future__ import annotations

import time
from typing import Any

import httpx

from ownership.common.sanitize import truncateText
from ownership.domain.error_codes import ErrorCode
from ownership.errors import AppError


class ApiError(AppError):
    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body_snippet: str | None = None,
        retryable: bool = False,
        details: dict | None = None,
        code: str | None = None,
    ):
        """
        Назначение:
            Исключение для ошибок HTTP/API уровня CatalogApiClient.
        Контракт:
            - code: строковый код (HTTP_*, NETWORK_ERROR, INVALID_JSON и т.п.).
            - status_code/body_snippet используются для диагностики.
        """
        super().__init__(
            category="api",
            code=code or (f"HTTP_{status_code}" if status_code else ErrorCode.API_ERROR.value),
            message=message,
            retryable=retryable,
            details=details or {},
        )
        self.status_code = status_code
        self.body_snippet = body_snippet


class CatalogApiClient:
    def __init__(
        self,
        baseUrl: str,
        token: str | None = None,
        timeoutSeconds: float = 5.0,
        retries: int = 1,
        retryBackoffSeconds: float = 0.2,
        transport: httpx.BaseTransport | None = None,
    ):
        """
        Назначение:
            HTTP-клиент REST API каталога с простой политикой ретраев.
        Контракт:
            - baseUrl обязателен; token передаётся как Bearer, если задан.
            - retries/retryBackoffSeconds управляют повторными попытками по 429/5xx и сетевым ошибкам.
        """
        self.baseUrl = baseUrl.rstrip("/")
        self.token = token
        self.retries = retries
        self.retryBackoffSeconds = retryBackoffSeconds
        self.retry_attempts = 0

        self.client = httpx.Client(
            base_url=self.baseUrl,
            timeout=timeoutSeconds,
            transport=transport,
        )

    def close(self) -> None:
        self.client.close()

    def _headers(self) -> dict[str, str]:
        headers = {"accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _should_retry(self, resp: httpx.Response) -> bool:
        """Решает, стоит ли повторить запрос (429 или 5xx)."""
        if resp.status_code == 429:
            return True
        if 500 <= resp.status_code <= 599:
            return True
        return False

    def _sleep_backoff(self, attempt: int) -> None:
        """Задержка с экспоненциальным ростом для ретраев."""
        delay = self.retryBackoffSeconds * (2 ** attempt)
        time.sleep(delay)

    def getJson(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        *,
        timeout: float | None = None,
        retries: int | None = None,
        allowNotFound: bool = False,
    ) -> Any | None:
        """
        GET JSON с ретраями по 429/5xx и сетевым ошибкам.
        404 при allowNotFound=True возвращает None, иначе ApiError.
        """
        params = params or {}
        maxRetries = self.retries if retries is None else retries
        requestTimeout = timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT
        attempt = 0
        while True:
            try:
                resp = self.client.get(path, params=params, headers=self._headers(), timeout=requestTimeout)
            except (httpx.TimeoutException, httpx.TransportError) as exc:
                if attempt >= maxRetries:
                    raise ApiError(
                        "Network error",
                        status_code=None,
                        retryable=True,
                        code=ErrorCode.NETWORK_ERROR.value,
                        details={"path": path, "error": type(exc).__name__},
                    ) from exc
                self.retry_attempts += 1
                self._sleep_backoff(attempt)
                attempt += 1
                continue

            if resp.status_code == 200:
                try:
                    return resp.json()
                except ValueError as exc:
                    raise ApiError(
                        "Invalid JSON response",
                        status_code=resp.status_code,
                        retryable=False,
                        code=ErrorCode.INVALID_JSON.value,
                    ) from exc

            if resp.status_code == 404 and allowNotFound:
                return None

            if self._should_retry(resp) and attempt < maxRetries:
                self.retry_attempts += 1
                self._sleep_backoff(attempt)
                attempt += 1
                continue

            body_snippet = truncateText(resp.text, 200) if resp.text else None
            raise ApiError(
                f"HTTP {resp.status_code}",
                status_code=resp.status_code,
                body_snippet=body_snippet,
                retryable=self._should_retry(resp),
                details={"body_snippet": body_snippet, "path": path},
                code=ErrorCode.from_status(resp.status_code).value,
            )
