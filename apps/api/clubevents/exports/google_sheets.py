from __future__ import annotations

import time
from collections.abc import Sequence
from typing import Any
from urllib.parse import quote

import httpx
import jwt

from clubevents.exports.base import ExportTarget
from clubevents.services.error_codes import ErrorCode
from clubevents.services.exceptions import DependencyError

SHEETS_SCOPE = "https://www.googleapis.com/auth/spreadsheets"
JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"


class GoogleSheetsExportTarget(ExportTarget):
    """Google Sheets v4 over REST, authenticated as a service account.

    The access token comes from a signed JWT assertion exchanged at the
    account's token endpoint and is reused until shortly before it expires.
    """

    def __init__(
        self,
        client_email: str,
        private_key: str,
        token_uri: str,
        api_url: str,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._client_email = client_email
        self._private_key = private_key
        self._token_uri = token_uri
        self._api_url = api_url.rstrip("/")
        self._client = client or httpx.Client(timeout=timeout)
        self._token: str | None = None
        self._token_expires_at = 0.0

    def _failed(self, what: str, exc: Exception) -> DependencyError:
        return DependencyError(ErrorCode.EXPORT_FAILED.value, f"google sheets {what} failed: {exc}")

    def _access_token(self) -> str:
        now = time.time()
        if self._token and now < self._token_expires_at - 60:
            return self._token

        try:
            assertion = jwt.encode(
                {
                    "iss": self._client_email,
                    "scope": SHEETS_SCOPE,
                    "aud": self._token_uri,
                    "iat": int(now),
                    "exp": int(now) + 3600,
                },
                self._private_key,
                algorithm="RS256",
            )
        except (jwt.PyJWTError, ValueError, TypeError) as exc:
            raise self._failed("credential signing", exc) from exc

        try:
            response = self._client.post(
                self._token_uri,
                data={"grant_type": JWT_BEARER_GRANT, "assertion": assertion},
            )
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise self._failed("token exchange", exc) from exc

        try:
            self._token = body["access_token"]
        except (KeyError, TypeError) as exc:
            raise self._failed("token exchange", exc) from exc
        self._token_expires_at = now + int(body.get("expires_in", 3600))
        return self._token

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {self._access_token()}"}
        try:
            response = self._client.request(method, f"{self._api_url}{path}", headers=headers, **kwargs)
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise self._failed(f"{method} {path}", exc) from exc

    def create_document(self, title: str) -> str:
        body = self._request("POST", "/spreadsheets", json={"properties": {"title": title}})
        try:
            return body["spreadsheetId"]
        except (KeyError, TypeError) as exc:
            raise self._failed("create", exc) from exc

    def write_range(self, document_id: str, range_: str, rows: Sequence[Sequence[str]]) -> None:
        self._request(
            "PUT",
            f"/spreadsheets/{quote(document_id, safe='')}/values/{quote(range_, safe='!:')}",
            params={"valueInputOption": "RAW"},
            json={"values": [list(row) for row in rows]},
        )

    def document_url(self, document_id: str) -> str:
        return f"https://docs.google.com/spreadsheets/d/{document_id}/edit"
