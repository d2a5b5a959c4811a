from __future__ import annotations

from typing import Any

import httpx


class TaskflowApiError(RuntimeError):
  def __init__(self, *, status_code: int, message: str, details: dict[str, Any] | None = None) -> None:
    super().__init__(message)
    self.status_code = status_code
    self.message = message
    self.details = details or {}


def _extract_error(payload: Any) -> tuple[str, dict[str, Any]]:
  if isinstance(payload, dict):
    detail = payload.get("detail")
    if isinstance(detail, str) and detail.strip():
      return detail.strip(), {}
    if isinstance(detail, list) and detail:
      # FastAPI request validation errors
      parts = [str(e.get("msg", "")) for e in detail if isinstance(e, dict)]
      return "; ".join(p for p in parts if p) or "Request failed", {"errors": detail}
  if isinstance(payload, str) and payload.strip():
    return payload.strip()[:500], {}
  return "Request failed", {}


async def _request_json(client: httpx.AsyncClient, method: str, path: str, **kwargs: Any) -> Any:
  r = await client.request(method, path, **kwargs)
  if r.status_code >= 400:
    try:
      payload = r.json()
    except ValueError:
      payload = (r.text or "")[:800]
    msg, details = _extract_error(payload)
    raise TaskflowApiError(status_code=r.status_code, message=msg, details=details)
  if r.status_code == 204:
    return None
  return r.json()


class TaskflowClient:
  """Thin async client for the board endpoints the sync layer needs."""

  def __init__(
    self,
    base_url: str = "http://localhost:8000",
    *,
    token: str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    timeout: float = 30,
  ) -> None:
    headers = {"Accept": "application/json", "User-Agent": "taskflow-client"}
    self._client = httpx.AsyncClient(base_url=base_url.rstrip("/"), headers=headers, transport=transport, timeout=timeout)
    if token:
      self.set_token(token)

  def set_token(self, token: str) -> None:
    self._client.headers["Authorization"] = f"Bearer {token}"

  async def __aenter__(self) -> "TaskflowClient":
    return self

  async def __aexit__(self, *exc: Any) -> None:
    await self.aclose()

  async def aclose(self) -> None:
    await self._client.aclose()

  async def login(self, email: str, password: str) -> dict:
    data = await _request_json(self._client, "POST", "/auth/login", json={"email": email, "password": password})
    self.set_token(data["token"])
    return data

  async def get_board(self, board_id: str) -> dict:
    return await _request_json(self._client, "GET", f"/boards/{board_id}")

  async def create_list(self, board_id: str, title: str) -> dict:
    return await _request_json(self._client, "POST", f"/boards/{board_id}/lists", json={"title": title})

  async def create_task(self, list_id: str, title: str, **fields: Any) -> dict:
    return await _request_json(self._client, "POST", f"/lists/{list_id}/tasks", json={"title": title, **fields})

  async def reorder_task(self, *, task_id: str, source_list_id: str, destination_list_id: str, new_position: int) -> dict:
    return await _request_json(
      self._client,
      "PUT",
      "/tasks/reorder",
      json={
        "taskId": task_id,
        "sourceListId": source_list_id,
        "destinationListId": destination_list_id,
        "newPosition": new_position,
      },
    )

  async def move_list(self, list_id: str, new_index: int) -> list[dict]:
    return await _request_json(self._client, "PUT", f"/lists/{list_id}/move", json={"newIndex": new_index})

  async def reorder_lists(self, board_id: str, order: list[tuple[str, int]]) -> list[dict]:
    body = {"lists": [{"listId": list_id, "position": pos} for list_id, pos in order]}
    return await _request_json(self._client, "PUT", f"/boards/{board_id}/lists/reorder", json=body)
