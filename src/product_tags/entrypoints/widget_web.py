from __future__ import annotations

import json
import socket
import sys
import threading
import webbrowser
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import HTMLResponse, JSONResponse, Response
from starlette.routing import Route

from product_tags.controller import AddOutcome
from product_tags.models import WidgetParameters
from product_tags.rendering import INPUT_PLACEHOLDER
from product_tags.widget import ProductTagsWidget

_SHUTDOWN_TIMEOUT_SECONDS = 60 * 60  # 1 hour


class WidgetHost:
    """Host side of the widget contract: keeps the last committed output value."""

    def __init__(self, *, widget: ProductTagsWidget, parameters: WidgetParameters) -> None:
        self.widget = widget
        self.output_version = 0
        widget.initialize(parameters, self._on_output_changed)
        self.committed_output: dict[str, str] = widget.current_output()

    def _on_output_changed(self) -> None:
        self.output_version += 1
        self.committed_output = self.widget.current_output()

    def state_json(self) -> dict[str, Any]:
        view = self.widget.render()
        data = view.to_json()
        data["tags"] = list(self.widget.controller.tags)
        data["output"] = self.committed_output
        data["output_version"] = self.output_version
        return data


def _outcome_json(outcome: AddOutcome | None) -> dict[str, Any] | None:
    if outcome is None:
        return None
    return {
        "status": outcome.status.value,
        "accepted": outcome.accepted,
        "candidate": outcome.candidate,
        "message": outcome.message,
        "fetch_error": outcome.fetch_error,
    }


class _WidgetApi:
    def __init__(
        self,
        *,
        host: WidgetHost,
        on_done: Callable[[], None] | None,
    ) -> None:
        self.host = host
        self.on_done = on_done

    async def _parse_json_object(self, request: Request) -> tuple[dict[str, Any] | None, Response | None]:
        raw = await request.body()
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            return None, JSONResponse({"error": "Invalid JSON"}, status_code=400)
        if not isinstance(payload, dict):
            return None, JSONResponse({"error": "Expected JSON object"}, status_code=400)
        return payload, None

    async def serve_html(self, _request: Request) -> Response:
        return HTMLResponse(_build_html_page())

    async def serve_state(self, _request: Request) -> Response:
        return JSONResponse(self.host.state_json())

    async def serve_output(self, _request: Request) -> Response:
        return JSONResponse(self.host.widget.current_output())

    async def handle_key(self, request: Request) -> Response:
        payload, error_response = await self._parse_json_object(request)
        if error_response is not None:
            return error_response
        assert payload is not None

        key = payload.get("key")
        text = payload.get("text", "")
        if not isinstance(key, str) or not isinstance(text, str):
            return JSONResponse({"error": "Missing key or text"}, status_code=400)

        outcome = await self.host.widget.handle_key(key, text)
        data = self.host.state_json()
        data["outcome"] = _outcome_json(outcome)
        return JSONResponse(data)

    async def handle_add(self, request: Request) -> Response:
        payload, error_response = await self._parse_json_object(request)
        if error_response is not None:
            return error_response
        assert payload is not None

        text = payload.get("text")
        if not isinstance(text, str):
            return JSONResponse({"error": "Missing text"}, status_code=400)

        outcome = await self.host.widget.add_tag(text)
        data = self.host.state_json()
        data["outcome"] = _outcome_json(outcome)
        return JSONResponse(data)

    async def handle_remove(self, request: Request) -> Response:
        index = request.path_params["index"]
        try:
            self.host.widget.remove_tag(index)
        except IndexError as exc:
            return JSONResponse({"error": str(exc)}, status_code=400)
        return JSONResponse(self.host.state_json())

    async def handle_done(self, _request: Request) -> Response:
        if self.on_done is not None:
            threading.Thread(target=self.on_done, daemon=True).start()
        return JSONResponse({"ok": True, "output": self.host.committed_output})


def create_widget_app(
    *,
    host: WidgetHost,
    on_done: Callable[[], None] | None = None,
    on_close: Callable[[], Awaitable[None]] | None = None,
) -> Starlette:
    api = _WidgetApi(host=host, on_done=on_done)
    routes = [
        Route("/", api.serve_html, methods=["GET"]),
        Route("/api/state", api.serve_state, methods=["GET"]),
        Route("/api/output", api.serve_output, methods=["GET"]),
        Route("/api/key", api.handle_key, methods=["POST"]),
        Route("/api/tags", api.handle_add, methods=["POST"]),
        Route("/api/tags/{index:int}", api.handle_remove, methods=["DELETE"]),
        Route("/api/done", api.handle_done, methods=["POST"]),
    ]

    @asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncIterator[None]:
        try:
            yield
        finally:
            host.widget.dispose()
            if on_close is not None:
                await on_close()

    return Starlette(routes=routes, lifespan=lifespan)


def run_widget_web(
    *,
    widget: ProductTagsWidget,
    parameters: WidgetParameters,
    on_close: Callable[[], Awaitable[None]] | None = None,
    open_browser: bool = True,
) -> dict[str, str]:
    """Serve one widget on a local port until Done is pressed; return the committed output."""
    host_state = WidgetHost(widget=widget, parameters=parameters)

    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        sock.listen(128)
        host = str(sock.getsockname()[0])
        port = int(sock.getsockname()[1])
        url = f"http://{host}:{port}/"

        holder: dict[str, uvicorn.Server] = {}

        def request_shutdown() -> None:
            server = holder.get("server")
            if server is not None:
                server.should_exit = True

        app = create_widget_app(host=host_state, on_done=request_shutdown, on_close=on_close)
        config = uvicorn.Config(
            app=app,
            host=host,
            port=port,
            access_log=False,
            log_level="error",
        )
        server = uvicorn.Server(config=config)
        holder["server"] = server

        shutdown_timer = threading.Timer(_SHUTDOWN_TIMEOUT_SECONDS, request_shutdown)
        shutdown_timer.daemon = True
        shutdown_timer.start()

        print(f"Tags widget: {url}", file=sys.stderr)
        if open_browser:
            webbrowser.open(url)

        try:
            server.run(sockets=[sock])
        finally:
            shutdown_timer.cancel()

    print("Tags widget closed.", file=sys.stderr)
    return host_state.committed_output


def _build_html_page() -> str:
    return (
        """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>Product Tags</title>
<style>
  :root { --border: #ccc; --chip-bg: #e0f2fe; --chip-border: #2563eb; --error: #dc2626; }
  * { box-sizing: border-box; }
  body { font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", sans-serif; margin: 2rem; }
  header { display: flex; justify-content: space-between; align-items: center; margin-bottom: 1rem; }
  .tags-container { display: flex; flex-wrap: wrap; gap: 0.4rem; border: 1px solid var(--border);
                    border-radius: 6px; padding: 0.4rem; align-items: center; }
  .tag { background: var(--chip-bg); border: 1px solid var(--chip-border); border-radius: 12px;
         padding: 0.15rem 0.6rem; font-size: 0.9rem; display: flex; gap: 0.4rem; align-items: center; }
  .tag-remove { cursor: pointer; font-weight: bold; }
  .tags-input { flex: 1; min-width: 12rem; border: none; outline: none; padding: 0.3rem; font-size: 0.9rem; }
  .error-message { display: none; color: var(--error); font-size: 0.85rem; margin-top: 0.4rem; }
  .error-message.visible { display: block; }
  .output { margin-top: 1rem; color: #666; font-size: 0.8rem; }
  .done-btn { background: #16a34a; color: #fff; border: none; padding: 0.4rem 1.2rem;
              border-radius: 6px; cursor: pointer; }
</style>
</head>
<body>
<header>
  <h1>Product Tags</h1>
  <button class="done-btn" id="done-btn">Done</button>
</header>
<div class="tags-container" id="tags-container">
  <input class="tags-input" id="tags-input" placeholder="PLACEHOLDER">
</div>
<div class="error-message" id="error-message"></div>
<div class="output" id="output"></div>
<script>
const container = document.getElementById("tags-container");
const input = document.getElementById("tags-input");
const errorBox = document.getElementById("error-message");
const outputBox = document.getElementById("output");

function render(state) {
  container.querySelectorAll(".tag").forEach(el => el.remove());
  for (const chip of state.chips) {
    const tag = document.createElement("div");
    tag.className = "tag";
    const label = document.createElement("span");
    label.textContent = chip.label;
    const remove = document.createElement("span");
    remove.className = "tag-remove";
    remove.textContent = "\\u00d7";
    remove.addEventListener("click", () => removeTag(chip.index));
    tag.appendChild(label);
    tag.appendChild(remove);
    container.insertBefore(tag, input);
  }
  errorBox.textContent = state.status_message;
  errorBox.className = state.status_class;
  outputBox.textContent = "tagsField: " + state.output.tagsField;
}

async function refresh() {
  const resp = await fetch("/api/state");
  render(await resp.json());
}

async function removeTag(index) {
  const resp = await fetch(`/api/tags/${index}`, {method: "DELETE"});
  if (resp.ok) render(await resp.json());
  else refresh();
}

input.addEventListener("keydown", async (event) => {
  if (event.key !== "Enter") return;
  event.preventDefault();
  const text = input.value;
  if (text.trim()) input.value = "";
  const resp = await fetch("/api/key", {
    method: "POST",
    headers: {"Content-Type": "application/json"},
    body: JSON.stringify({key: event.key, text: text})
  });
  render(await resp.json());
});

document.getElementById("done-btn").addEventListener("click", async () => {
  await fetch("/api/done", {method: "POST"});
  document.body.textContent = "Saved.";
});

refresh();
</script>
</body>
</html>"""
    ).replace("PLACEHOLDER", INPUT_PLACEHOLDER)
