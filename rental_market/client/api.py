"""
HTTP client for the Rental Market API.
Serializes listing requests (JSON for accounts, multipart for listings) and
normalizes error bodies into ListingClientError.
"""

from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union
import json
import logging
import mimetypes
import os

import httpx

from rental_market.client.session import ClientSession

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8000"

# A path on disk, or an already loaded (filename, content, content type) triple
ImageInput = Union[str, Path, Tuple[str, bytes, str]]


class ListingClientError(Exception):
    """A request failed, either by an ``error`` body field or by HTTP status."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        body: Any = None
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.body = body

    def __str__(self) -> str:
        if self.status_code:
            return f"{self.message} (HTTP {self.status_code})"
        return self.message


class ListingClient:
    """
    Thin request/response mapping over the listing and auth endpoints.

    Every call returns the decoded JSON body or raises ListingClientError.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        session: Optional[ClientSession] = None,
        api_prefix: str = "/api",
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None
    ):
        self.base_url = (base_url or os.environ.get("RENTAL_MARKET_API_URL") or DEFAULT_BASE_URL).rstrip("/")
        self.api_prefix = "/" + api_prefix.strip("/")
        self.session = session or ClientSession()
        self._http = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "ListingClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # Accounts

    def register(self, name: str, email: str, password: str) -> Dict[str, Any]:
        """Create an account and store the returned token in the session."""
        result = self._request("POST", "/auth/register", json={"name": name, "email": email, "password": password})
        self.session.save(result["token"], result["user"])
        return result

    def login(self, email: str, password: str) -> Dict[str, Any]:
        """Log in and store the returned token in the session."""
        result = self._request("POST", "/auth/login", json={"email": email, "password": password})
        self.session.save(result["token"], result["user"])
        return result

    def logout(self) -> None:
        self.session.clear()

    def me(self) -> Dict[str, Any]:
        return self._request("GET", "/auth/me")

    # Listings

    def list_properties(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/properties")

    def list_user_properties(self, user_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Listings owned by ``user_id``, defaulting to the logged-in user."""
        user_id = user_id or self.session.user_id
        if not user_id:
            raise ListingClientError("Log in or pass a user id to list your listings")
        return self._request("GET", "/properties", params={"userId": user_id})

    def get_property(self, property_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/properties/{property_id}")

    def create_property(
        self,
        data: Mapping[str, Any],
        images: Sequence[ImageInput] = (),
        user_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Create a listing from form fields and image files.

        The owner defaults to the logged-in user.
        """
        form = self._form_fields(data)
        owner = user_id or self.session.user_id
        if owner:
            form["userId"] = owner
        return self._request("POST", "/properties", data=form, files=self._image_parts(images))

    def update_property(
        self,
        property_id: str,
        data: Mapping[str, Any],
        images: Sequence[ImageInput] = (),
        keep_images: Sequence[str] = ()
    ) -> Dict[str, Any]:
        """
        Update a listing; ``keep_images`` is only sent when it is non-empty.
        """
        form = self._form_fields(data)
        if keep_images:
            form["keepImages"] = json.dumps(list(keep_images))
        return self._request("PUT", f"/properties/{property_id}", data=form, files=self._image_parts(images))

    def delete_property(self, property_id: str) -> Dict[str, Any]:
        return self._request("DELETE", f"/properties/{property_id}")

    # Helpers

    def image_url(self, path: str) -> str:
        """Absolute URL of a stored image path."""
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def primary_image_url(self, property_data: Mapping[str, Any]) -> Optional[str]:
        images = property_data.get("images") or []
        return self.image_url(images[0]) if images else None

    def _headers(self) -> Dict[str, str]:
        if self.session.token:
            return {"Authorization": f"Bearer {self.session.token}"}
        return {}

    @staticmethod
    def _form_fields(data: Mapping[str, Any]) -> Dict[str, str]:
        return {key: str(value) for key, value in data.items() if value is not None and key != "images"}

    @staticmethod
    def _image_parts(images: Sequence[ImageInput]) -> List[Tuple[str, Tuple[str, bytes, str]]]:
        parts = []
        for image in images:
            if isinstance(image, tuple):
                parts.append(("images", image))
                continue
            path = Path(image)
            content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
            parts.append(("images", (path.name, path.read_bytes(), content_type)))
        return parts

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.api_prefix}{path}"
        if not kwargs.get("files"):
            kwargs.pop("files", None)
        try:
            response = self._http.request(method, url, headers=self._headers(), **kwargs)
        except httpx.HTTPError as e:
            logger.debug(f"{method} {url} failed: {e}")
            raise ListingClientError(f"Could not reach {self.base_url}: {e}") from e
        return self._handle_response(response)

    @staticmethod
    def _handle_response(response: httpx.Response) -> Any:
        """
        Decode the body; an ``error`` field is checked first, then the status code.
        """
        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict) and body.get("error"):
            error = body["error"]
            if isinstance(error, dict):
                raise ListingClientError(
                    error.get("message") or "Request failed",
                    status_code=response.status_code,
                    error_code=error.get("code"),
                    body=body,
                )
            raise ListingClientError(str(error), status_code=response.status_code, body=body)

        if response.is_error:
            detail = body.get("detail") if isinstance(body, dict) else None
            raise ListingClientError(
                str(detail) if detail else f"Request failed with status {response.status_code}",
                status_code=response.status_code,
                body=body,
            )

        if body is None:
            raise ListingClientError("Response body is not JSON", status_code=response.status_code)

        return body
