from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

CHIP_CLASS = "tag"
REMOVE_LABEL = "×"
INPUT_PLACEHOLDER = "Type and press Enter to add tags"


@dataclass(frozen=True)
class ChipDescriptor:
    index: int
    label: str
    on_remove: Callable[[], object] = field(compare=False, repr=False)
    css_class: str = CHIP_CLASS
    remove_label: str = REMOVE_LABEL


@dataclass(frozen=True)
class WidgetView:
    chips: tuple[ChipDescriptor, ...]
    status_message: str
    status_class: str
    input_value: str = ""
    placeholder: str = INPUT_PLACEHOLDER

    def to_json(self) -> dict[str, object]:
        return {
            "chips": [{"index": chip.index, "label": chip.label} for chip in self.chips],
            "status_message": self.status_message,
            "status_class": self.status_class,
            "input_value": self.input_value,
            "placeholder": self.placeholder,
        }


def render_chips(tags: Sequence[str], on_remove: Callable[[int], object]) -> list[ChipDescriptor]:
    chips: list[ChipDescriptor] = []
    for index, tag in enumerate(tags):
        chips.append(ChipDescriptor(index=index, label=tag, on_remove=_bind_index(on_remove, index)))
    return chips


def status_css_class(message: str) -> str:
    return "error-message visible" if message else "error-message"


def _bind_index(on_remove: Callable[[int], object], index: int) -> Callable[[], object]:
    def remove() -> object:
        return on_remove(index)

    return remove
