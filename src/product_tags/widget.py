from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, Protocol

from product_tags.controller import AddOutcome, AddStatus, TagListController
from product_tags.keyword_cache import KeywordCache
from product_tags.models import WidgetParameters
from product_tags.record_store import RecordStore
from product_tags.rendering import WidgetView, render_chips, status_css_class

COMMIT_KEY = "Enter"
OUTPUT_FIELD = "tagsField"


class HostedControl(Protocol):
    """Capabilities a host invokes over a control's lifetime."""

    def initialize(
        self,
        parameters: WidgetParameters | Mapping[str, Any],
        notify_output_changed: Callable[[], None],
    ) -> None: ...

    def on_external_update(self, parameters: WidgetParameters | Mapping[str, Any]) -> None: ...

    def current_output(self) -> dict[str, str]: ...

    def dispose(self) -> None: ...


class ProductTagsWidget:
    """One tag-entry widget instance: owns its keyword cache, tag list, input and status line."""

    def __init__(self, store: RecordStore) -> None:
        self.cache = KeywordCache(store)
        self.controller = TagListController(self.cache, on_change=self._output_changed)
        self.parameters = WidgetParameters()
        self.input_value = ""
        self.status_message = ""
        self._notify_output_changed: Callable[[], None] | None = None
        self._initialized = False
        self._listening = False

    # Host lifecycle

    def initialize(
        self,
        parameters: WidgetParameters | Mapping[str, Any],
        notify_output_changed: Callable[[], None],
    ) -> None:
        if self._initialized:
            raise RuntimeError("Widget is already initialized")
        self._apply_parameters(parameters)
        self._notify_output_changed = notify_output_changed
        self.controller.initialize(self.parameters.tags_field)
        self._initialized = True
        self._listening = True

    def on_external_update(self, parameters: WidgetParameters | Mapping[str, Any]) -> None:
        self._apply_parameters(parameters)

    def current_output(self) -> dict[str, str]:
        return {OUTPUT_FIELD: self.controller.serialize()}

    def dispose(self) -> None:
        self._listening = False
        self._notify_output_changed = None

    # User input

    async def handle_key(self, key: str, text: str) -> AddOutcome | None:
        """Process a key press in the input; only Enter commits ``text`` as a candidate."""
        if not self._listening:
            return None
        self.input_value = text
        if key != COMMIT_KEY:
            return None
        value = text.strip()
        if not value:
            return None
        self.input_value = ""
        return await self.add_tag(value)

    async def add_tag(self, text: str) -> AddOutcome:
        outcome = await self.controller.add_candidate(text)
        if outcome.status == AddStatus.ignored:
            return outcome
        self.status_message = outcome.message or ""
        return outcome

    def remove_tag(self, index: int) -> str:
        removed = self.controller.remove_at(index)
        self.status_message = ""
        return removed

    def render(self) -> WidgetView:
        return WidgetView(
            chips=tuple(render_chips(self.controller.tags, self.remove_tag)),
            status_message=self.status_message,
            status_class=status_css_class(self.status_message),
            input_value=self.input_value,
        )

    def _apply_parameters(self, parameters: WidgetParameters | Mapping[str, Any]) -> None:
        if not isinstance(parameters, WidgetParameters):
            parameters = WidgetParameters.model_validate(dict(parameters))
        self.parameters = parameters
        self.controller.source = parameters.keyword_source

    def _output_changed(self) -> None:
        if self._notify_output_changed is not None:
            self._notify_output_changed()
