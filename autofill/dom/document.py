"""Live form document backed by BeautifulSoup.

``FormDocument`` is the side-effecting resource the extractor reads and the
fill engine writes. Page scripts are modelled as synchronous listeners
registered per event type; ``DocumentEventNotifier`` dispatches the
"value changed" / "value committed" pair to them after every write.
"""

import logging
import re
from collections.abc import Callable
from typing import Protocol

from bs4 import BeautifulSoup, Tag

logger = logging.getLogger(__name__)

FIELD_MARKER_ATTR = "data-job-app-field-id"
CONTROL_TAGS = ["input", "select", "textarea"]

EventListener = Callable[[Tag, str], None]

_HIDDEN_STYLE = re.compile(r"(display\s*:\s*none|visibility\s*:\s*hidden)", re.IGNORECASE)


def normalize_text(text: str | None) -> str:
    """Collapse whitespace the way rendered text content reads."""
    return " ".join((text or "").split())


def class_list(element: Tag) -> list[str]:
    classes = element.get("class") or []
    if isinstance(classes, str):
        return classes.split()
    return list(classes)


class FormDocument:
    """A parsed HTML document whose form controls can be read and written."""

    def __init__(self, html: str | BeautifulSoup, url: str = "") -> None:
        """Initialize the document.

        Args:
            html: Raw HTML or an already parsed soup
            url: Address the document was loaded from
        """
        self.soup = html if isinstance(html, BeautifulSoup) else BeautifulSoup(html, "html.parser")
        self.url = url
        self._listeners: dict[str, list[EventListener]] = {}

    # =========================================================================
    # Page events
    # =========================================================================

    def add_event_listener(self, event: str, listener: EventListener) -> None:
        """Register a page listener for an event type ("input", "change")."""
        self._listeners.setdefault(event, []).append(listener)

    def dispatch_event(self, control: Tag, event: str) -> None:
        """Run the page listeners for an event fired on a control.

        A failing listener is logged and does not stop the others.
        """
        for listener in list(self._listeners.get(event, [])):
            try:
                listener(control, event)
            except Exception as e:
                logger.warning(f"Page listener for {event!r} failed: {e}")

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def title(self) -> str:
        if self.soup.title and self.soup.title.string:
            return normalize_text(self.soup.title.string)
        return ""

    @property
    def body(self) -> Tag:
        return self.soup.body or self.soup

    def text_content(self, element: Tag | None = None) -> str:
        return normalize_text((element or self.body).get_text(" "))

    def get_element_by_id(self, element_id: str) -> Tag | None:
        return self.soup.find(id=element_id)

    def find_control(self, field_id: str) -> Tag | None:
        """Locate a control by marker attribute, then id, then name."""
        if not field_id:
            return None

        control = self.soup.find(CONTROL_TAGS, attrs={FIELD_MARKER_ATTR: field_id})
        if control is None:
            control = self.soup.find(CONTROL_TAGS, id=field_id)
        if control is None:
            control = self.soup.find(CONTROL_TAGS, attrs={"name": field_id})
        return control

    def radio_group(self, name: str) -> list[Tag]:
        return [
            radio
            for radio in self.soup.find_all("input", attrs={"name": name})
            if input_type(radio) == "radio"
        ]

    def clear_field_markers(self) -> None:
        for element in self.soup.find_all(attrs={FIELD_MARKER_ATTR: True}):
            del element[FIELD_MARKER_ATTR]

    def to_html(self) -> str:
        return str(self.soup)

    # =========================================================================
    # Control state
    # =========================================================================

    def is_disabled(self, control: Tag) -> bool:
        if control.has_attr("disabled"):
            return True
        for fieldset in control.find_parents("fieldset"):
            if fieldset.has_attr("disabled"):
                return True
        return False

    def is_hidden(self, control: Tag) -> bool:
        if control.name == "input" and input_type(control) == "hidden":
            return True
        for element in [control, *control.parents]:
            if not isinstance(element, Tag) or element is self.soup:
                continue
            if element.has_attr("hidden"):
                return True
            if _HIDDEN_STYLE.search(element.get("style", "")):
                return True
        return False

    def get_value(self, control: Tag) -> str:
        if control.name == "textarea":
            return control.get_text()
        if control.name == "select":
            option = self.selected_option(control)
            return option_value(option) if option is not None else ""
        return control.get("value", "")

    def set_value(self, control: Tag, value: str) -> None:
        if control.name == "textarea":
            control.string = value
        else:
            control["value"] = value

    def set_checked(self, control: Tag, checked: bool) -> None:
        if checked:
            control["checked"] = ""
        elif control.has_attr("checked"):
            del control["checked"]

    def is_checked(self, control: Tag) -> bool:
        return control.has_attr("checked")

    def options(self, select: Tag) -> list[Tag]:
        return select.find_all("option")

    def selected_option(self, select: Tag) -> Tag | None:
        options = self.options(select)
        for option in options:
            if option.has_attr("selected"):
                return option
        # Single selects display their first option when nothing is selected
        if options and not select.has_attr("multiple"):
            return options[0]
        return None

    def select_option(self, select: Tag, chosen: Tag) -> None:
        for option in self.options(select):
            if option is chosen:
                option["selected"] = ""
            elif option.has_attr("selected"):
                del option["selected"]


def input_type(control: Tag) -> str:
    return (control.get("type") or "text").strip().lower()


def option_text(option: Tag) -> str:
    return normalize_text(option.get_text())


def option_value(option: Tag) -> str:
    if option.has_attr("value"):
        return option["value"]
    return option_text(option)


class ChangeNotifier(Protocol):
    """Capability that lets page validation logic observe a write."""

    async def notify_field_changed(self, control: Tag) -> None:
        ...


class DocumentEventNotifier:
    """Fires the "input" then "change" events on the document's listeners."""

    EVENTS = ("input", "change")

    def __init__(self, document: FormDocument) -> None:
        self.document = document

    async def notify_field_changed(self, control: Tag) -> None:
        for event in self.EVENTS:
            self.document.dispatch_event(control, event)
