# teacher_directory/client.py
"""
Client side of the directory: a small ``requests`` API client, the
search-as-you-type controller with its explicit UI state, display helpers
and the pre-upload image compression pass.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import quote

import cv2
import numpy as np
import requests

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2
SEARCH_DELAY_SECONDS = 0.3
UPLOAD_MAX_WIDTH = 800
UPLOAD_MAX_HEIGHT = 600
UPLOAD_JPEG_QUALITY = 80


class DirectoryClientError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


# --- API Client ---

class DirectoryClient:
    """Thin wrapper over the HTTP API. Any session with a requests-like interface works."""

    def __init__(self, base_url: str, session=None, timeout: float = 60):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self.token: Optional[str] = None

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    def _request(self, method: str, path: str, **kwargs):
        response = self.session.request(method, self._url(path), timeout=self.timeout, **kwargs)
        if response.status_code >= 400:
            try:
                message = response.json().get("error", response.text)
            except ValueError:
                message = response.text
            raise DirectoryClientError(response.status_code, message)
        return response

    def list_names(self) -> List[str]:
        data = self._request("GET", "/api/people").json()
        return [teacher["name"] for teacher in data["teachers"]]

    def search(self, query: str) -> List[dict]:
        return self._request("GET", "/api/search", params={"query": query}).json()["teachers"]

    def get_detail(self, name: str) -> dict:
        return self._request("GET", f"/api/directions/{quote(name, safe='')}").json()

    def fetch_image(self, image_url: str) -> Tuple[bytes, str]:
        response = self.session.request("GET", image_url, timeout=self.timeout)
        if response.status_code >= 400:
            raise DirectoryClientError(response.status_code, "Image unavailable")
        return response.content, response.headers.get("content-type", "")

    def add_person(self, name: str, floor: str, branch: str, directions: str,
                   image: bytes, filename: str = "photo.jpg", mime_type: str = "image/jpeg") -> dict:
        payload = {"name": name, "floor": floor, "branch": branch, "directions": directions}
        files = {"image": (filename, image, mime_type)}
        response = self._request("POST", "/api/add-teacher", data=payload, files=files,
                                 headers=self._auth_headers())
        return response.json()["teacher"]

    def update_person(self, name: str, **changes) -> str:
        response = self._request("PUT", f"/api/update-teacher/{quote(name, safe='')}",
                                 json=changes, headers=self._auth_headers())
        return response.json()["message"]

    def delete_person(self, name: str) -> str:
        response = self._request("DELETE", f"/api/delete-teacher/{quote(name, safe='')}",
                                 headers=self._auth_headers())
        return response.json()["message"]

    def set_password(self, username: str, password: str) -> str:
        response = self._request("POST", "/api/set-password",
                                 json={"username": username, "password": password},
                                 headers=self._auth_headers())
        return response.json()["message"]

    def login(self, username: str, password: str) -> str:
        """Verify the credential and keep the issued token for admin calls."""
        data = self._request("POST", "/api/verify-password",
                             json={"username": username, "password": password}).json()
        self.token = data["token"]
        return self.token

    def change_password(self, username: str, old_password: str, new_password: str) -> str:
        if old_password == new_password:
            raise ValueError("New password must be different from the current password.")
        response = self._request("PUT", "/api/change-password", json={
            "username": username, "oldPassword": old_password, "newPassword": new_password,
        })
        return response.json()["message"]


# --- UI State ---

@dataclass
class SearchState:
    """Everything the search UI remembers between keystrokes."""
    selected: Optional[dict] = None
    pending: Optional[Any] = None
    cache: Dict[str, List[dict]] = field(default_factory=dict)

    def cached(self, query: str) -> Optional[List[dict]]:
        return self.cache.get(query)

    def remember(self, query: str, results: List[dict]):
        self.cache[query] = results


class SearchController:
    """
    Debounced search-as-you-type.

    Every keystroke cancels the pending timer and schedules a new one, so
    only the last keystroke within ``delay`` seconds reaches the network.
    ``on_results`` receives ``None`` when the results should be hidden.
    """

    def __init__(
        self,
        client: DirectoryClient,
        state: SearchState,
        on_results: Callable[[Optional[List[dict]]], None],
        on_detail: Optional[Callable[[dict], None]] = None,
        on_error: Optional[Callable[[str], None]] = None,
        delay: float = SEARCH_DELAY_SECONDS,
        timer_factory=threading.Timer,
    ):
        self.client = client
        self.state = state
        self.on_results = on_results
        self.on_detail = on_detail
        self.on_error = on_error
        self.delay = delay
        self.timer_factory = timer_factory

    def on_input(self, text: str):
        self.cancel()
        query = text.strip()
        timer = self.timer_factory(self.delay, self.run_search, args=(query,))
        self.state.pending = timer
        timer.start()

    def cancel(self):
        if self.state.pending is not None:
            self.state.pending.cancel()
            self.state.pending = None

    def run_search(self, query: str):
        if len(query) < MIN_QUERY_LENGTH:
            self.state.selected = None
            self.on_results(None)
            return

        cached = self.state.cached(query)
        if cached is not None:
            self.on_results(cached)
            return

        try:
            results = self.client.search(query)
        except (DirectoryClientError, requests.RequestException) as e:
            logger.error(f"Error searching teachers: {e}")
            self._report("Error searching teachers")
            return
        self.state.remember(query, results)
        self.on_results(results)

    def select(self, person: dict) -> Optional[dict]:
        """Remember the chosen person and load their directions right away."""
        self.state.selected = person
        try:
            detail = self.client.get_detail(person["name"])
        except (DirectoryClientError, requests.RequestException) as e:
            logger.error(f"Error fetching directions: {e}")
            self._report("Failed to fetch directions. Please try again.")
            return None
        if self.on_detail:
            self.on_detail(detail)
        return detail

    def _report(self, message: str):
        if self.on_error:
            self.on_error(message)


# --- Rendering ---

def highlight_match(name: str, query: str) -> Tuple[str, str, str]:
    """Split ``name`` into (before, match, after) around the first case-insensitive hit."""
    index = name.lower().find(query.lower()) if query else -1
    if index == -1:
        return name, "", ""
    end = index + len(query)
    return name[:index], name[index:end], name[end:]


def format_summary(person: dict, query: str = "") -> str:
    before, match, after = highlight_match(person.get("name") or "Unknown", query)
    name = f"{before}[{match}]{after}" if match else before
    return f"{name} | {person.get('branch') or ''} | Floor {person.get('floor') or ''}"


def format_detail(detail: dict) -> str:
    lines = [
        f"Branch: {detail.get('branch', '')}",
        f"Floor: {detail.get('floor', '')}",
        "Directions:",
        detail.get("directions", ""),
    ]
    if detail.get("imageUrl"):
        lines.append(f"Photo: {detail['imageUrl']}")
    return "\n".join(lines)


# --- Upload Preparation ---

def prepare_upload_image(
    data: bytes,
    max_width: int = UPLOAD_MAX_WIDTH,
    max_height: int = UPLOAD_MAX_HEIGHT,
    quality: int = UPLOAD_JPEG_QUALITY,
) -> bytes:
    """
    Shrink a photo to fit inside ``max_width`` x ``max_height`` and re-encode as JPEG.

    This only bounds the upload size. The server applies its own resize.
    """
    image_bgr = cv2.imdecode(np.frombuffer(data, np.uint8), cv2.IMREAD_COLOR)
    if image_bgr is None:
        raise ValueError("Could not decode image for upload.")

    h, w = image_bgr.shape[:2]
    scale = min(max_width / w, max_height / h, 1.0)
    if scale < 1.0:
        size = (max(1, int(round(w * scale))), max(1, int(round(h * scale))))
        image_bgr = cv2.resize(image_bgr, size, interpolation=cv2.INTER_AREA)

    ok, buffer = cv2.imencode(".jpg", image_bgr, [int(cv2.IMWRITE_JPEG_QUALITY), quality])
    if not ok:
        raise ValueError("Could not encode image for upload.")
    return buffer.tobytes()
