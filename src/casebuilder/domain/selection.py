"""
Free-form rectangle selection over rendered workflow entities.

The caller supplies the bounding rectangles of rendered entities (each tagged
with ``data-*id`` markers); this module decides what a dragged rectangle hits,
where the quick-action overlay goes, and how the selection is described to the
assistant.
"""

from __future__ import annotations

import json
import math
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from casebuilder.domain.models import Field, Stage, View

OVERLAY_ASSUMED_WIDTH = 320
OVERLAY_MARGIN = 8
OVERLAY_OFFSET = 8
OVERLAY_ASSUMED_HEIGHT = 120

MARKER_KINDS: tuple[str, ...] = ("field", "view", "stage", "process", "step")

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height


@dataclass(frozen=True)
class Point:
    x: float
    y: float


def rects_intersect(a: Rect, b: Rect) -> bool:
    """Strict AABB overlap; rectangles that only touch do not intersect."""
    return a.x < b.right and a.right > b.x and a.y < b.bottom and a.bottom > b.y


def rect_from_points(start: Point, end: Point) -> Rect:
    x1, x2 = min(start.x, end.x), max(start.x, end.x)
    y1, y2 = min(start.y, end.y), max(start.y, end.y)
    return Rect(x1, y1, x2 - x1, y2 - y1)


def parse_marker_id(raw: str | None) -> int | None:
    """Parse a marker attribute the lenient way ("12px" -> 12, "abc" -> None)."""
    if not raw:
        return None
    match = _LEADING_INT.match(raw)
    return int(match.group(1)) if match else None


@dataclass(frozen=True)
class EntityNode:
    """
    A rendered entity's bounding box and its marker attributes.

    ``markers`` maps attribute names (``data-fieldid``, ``data-viewid``,
    ``data-stageid``, ``data-processid``, ``data-stepid``) to their raw string
    values. One node may carry several markers.
    """

    rect: Rect
    markers: Mapping[str, str] = field(default_factory=dict)

    def marker_id(self, kind: str) -> int | None:
        return parse_marker_id(self.markers.get(f"data-{kind}id"))


@dataclass(frozen=True)
class SelectionResult:
    field_ids: tuple[int, ...] = ()
    view_ids: tuple[int, ...] = ()
    stage_ids: tuple[int, ...] = ()
    process_ids: tuple[int, ...] = ()
    step_ids: tuple[int, ...] = ()
    overlay: Point | None = None

    @property
    def is_empty(self) -> bool:
        return not (
            self.field_ids
            or self.view_ids
            or self.stage_ids
            or self.process_ids
            or self.step_ids
        )


def parse_selected_view(selected_view: str | None) -> int | None:
    """Accept a view selection in "db-<id>" or "<id>" form."""
    if not selected_view:
        return None
    if selected_view.startswith("db-"):
        return parse_marker_id(selected_view[3:])
    return parse_marker_id(selected_view)


def select_entities(
    selection: Rect,
    nodes: Sequence[EntityNode],
    viewport: tuple[float, float],
    active_tab: str = "workflow",
    selected_view: str | None = None,
) -> SelectionResult:
    """
    Resolve a finished selection rectangle.

    Args:
        selection: The dragged rectangle
        nodes: Rendered entities with marker attributes
        viewport: (width, height) of the visible area
        active_tab: Current panel tab; on "views" the open view is included
        selected_view: Open view as "db-<id>" or "<id>"

    Returns:
        Hit ids per kind in first-hit order, plus the overlay anchor
    """
    picked: dict[str, dict[int, None]] = {kind: {} for kind in MARKER_KINDS}
    min_x = min_y = math.inf
    max_x = max_y = -math.inf

    for node in nodes:
        if not rects_intersect(selection, node.rect):
            continue
        for kind in MARKER_KINDS:
            entity_id = node.marker_id(kind)
            if entity_id is not None:
                picked[kind][entity_id] = None
        min_x = min(min_x, node.rect.x)
        min_y = min(min_y, node.rect.y)
        max_x = max(max_x, node.rect.right)
        max_y = max(max_y, node.rect.bottom)

    hits = {kind: tuple(ids) for kind, ids in picked.items()}
    any_hit = any(hits.values())

    view_ids = hits["view"]
    if active_tab == "views":
        current = parse_selected_view(selected_view)
        if current is not None and current not in view_ids:
            view_ids = (*view_ids, current)

    overlay = overlay_position(
        selection,
        viewport,
        hit_box=(min_x, min_y, max_x) if any_hit and math.isfinite(min_x) else None,
        anchor_left_to_hits=bool(hits["field"]),
    )

    return SelectionResult(
        field_ids=hits["field"],
        view_ids=view_ids,
        stage_ids=hits["stage"],
        process_ids=hits["process"],
        step_ids=hits["step"],
        overlay=overlay,
    )


def overlay_position(
    selection: Rect,
    viewport: tuple[float, float],
    hit_box: tuple[float, float, float] | None = None,
    anchor_left_to_hits: bool = False,
) -> Point:
    """
    Place the quick-action overlay beside the selection.

    Prefers the top-right of the hit entities (or of the selection rectangle
    when nothing was hit), flips to the left when it would overflow the
    viewport, and clamps vertically inside the margins.
    """
    viewport_w, viewport_h = viewport
    if hit_box is not None:
        min_x, min_y, max_x = hit_box
        x = max_x + OVERLAY_OFFSET
        y = min_y - OVERLAY_OFFSET
    else:
        x = selection.right + OVERLAY_OFFSET
        y = selection.y - OVERLAY_OFFSET

    if x + OVERLAY_ASSUMED_WIDTH > viewport_w - OVERLAY_MARGIN:
        if anchor_left_to_hits and hit_box is not None:
            left = hit_box[0] - OVERLAY_ASSUMED_WIDTH - OVERLAY_OFFSET
        else:
            left = selection.x - OVERLAY_ASSUMED_WIDTH - OVERLAY_OFFSET
        x = max(OVERLAY_MARGIN, left)

    y = max(OVERLAY_MARGIN, min(y, viewport_h - OVERLAY_MARGIN - OVERLAY_ASSUMED_HEIGHT))
    return Point(x, y)


class FreeFormSelection:
    """
    Pointer-driven selection gesture.

    ``begin()`` arms the gesture, a primary-button ``pointer_down`` anchors the
    rectangle, ``pointer_move`` grows it and ``pointer_up`` resolves it against
    the rendered nodes.
    """

    PRIMARY_BUTTON = 0

    def __init__(self) -> None:
        self.active = False
        self._start: Point | None = None
        self.rect: Rect | None = None
        self.result = SelectionResult()

    def begin(self) -> None:
        self.result = SelectionResult()
        self._start = None
        self.rect = None
        self.active = True

    def pointer_down(self, x: float, y: float, button: int = PRIMARY_BUTTON) -> None:
        if not self.active or button != self.PRIMARY_BUTTON:
            return
        self._start = Point(x, y)
        self.rect = Rect(x, y, 0, 0)

    def pointer_move(self, x: float, y: float) -> None:
        if self._start is None:
            return
        self.rect = rect_from_points(self._start, Point(x, y))

    def pointer_up(
        self,
        nodes: Sequence[EntityNode],
        viewport: tuple[float, float],
        active_tab: str = "workflow",
        selected_view: str | None = None,
    ) -> SelectionResult | None:
        """Finish the gesture; returns None when no rectangle was drawn."""
        rect = self.rect
        self.active = False
        self._start = None
        self.rect = None
        if rect is None:
            return None
        self.result = select_entities(rect, nodes, viewport, active_tab, selected_view)
        return self.result


def _compact(value: object) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def compose_quick_chat_message(
    text: str,
    selection: SelectionResult,
    fields: Sequence[Field],
    views: Sequence[View],
    stages: Sequence[Stage],
) -> str:
    """
    Prefix an instruction with a description of the current selection.

    Field, view and stage ids are passed through as selected; their names
    follow list order of ``fields``/``views``/``stages``. Process and step ids
    and names are collected by walking the tree, so they come out in tree
    order.
    """
    field_names = [f.name for f in fields if f.id in selection.field_ids]
    view_names = [v.name for v in views if v.id in selection.view_ids]
    stage_names = [s.name for s in stages if s.id in selection.stage_ids]

    process_ids: list[int] = []
    process_names: list[str] = []
    step_ids: list[int] = []
    step_names: list[str] = []
    for stage in stages:
        for process in stage.processes:
            if process.id in selection.process_ids:
                process_ids.append(process.id)
                process_names.append(process.name)
    for stage in stages:
        for process in stage.processes:
            for step in process.steps:
                if step.id in selection.step_ids:
                    step_ids.append(step.id)
                    step_names.append(step.name)

    lines = [
        ("fieldIds", list(selection.field_ids)),
        ("fieldNames", field_names),
        ("viewIds", list(selection.view_ids)),
        ("viewNames", view_names),
        ("stageIds", list(selection.stage_ids)),
        ("stageNames", stage_names),
        ("processIds", process_ids),
        ("processNames", process_names),
        ("stepIds", step_ids),
        ("stepNames", step_names),
    ]
    context = "Context:\n" + "".join(
        f"Selected {label}={_compact(value)}\n" for label, value in lines
    )
    return f"{context}\nInstruction: {text.strip()}"
