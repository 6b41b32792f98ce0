"""Drawing tool state machine.

States:
- idle:              no tool selected
- tool_selected(t):  tool armed, waiting for a pointer-down
- drawing(t, d):     pointer held, `d` is the in-progress drawing
- erasing:           eraser armed and pointer held

`color_picker_open` is orthogonal: while true every pointer event is
ignored (the picker gets them instead).

Coordinate failures never raise; the event is dropped and the state stays
where it was.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, List, Optional

from chartcore.infrastructure.logging.logging import get_logger
from chartcore.infrastructure.utils.timeutils import now_seconds
from chartcore.models.drawing_models import Drawing, DrawingType
from chartcore.services.drawing.coordinate_mapper import CoordinateMapper
from chartcore.services.drawing.drawing_store import DrawingStore
from chartcore.services.drawing.hit_testing import EraserTolerances, hits_drawing
from chartcore.services.drawing.projection import project_drawing


class Tool(str, Enum):
    LINE = "line"
    RECTANGLE = "rectangle"
    CIRCLE = "circle"
    FREEHAND = "freehand"
    ERASER = "eraser"

    @property
    def drawing_type(self) -> Optional[DrawingType]:
        if self is Tool.ERASER:
            return None
        return DrawingType(self.value)


class Phase(str, Enum):
    IDLE = "idle"
    TOOL_SELECTED = "tool_selected"
    DRAWING = "drawing"
    ERASING = "erasing"


@dataclass(frozen=True)
class ToolState:
    """Snapshot for cursor / toolbar feedback."""

    phase: Phase
    tool: Optional[Tool]
    in_progress: Optional[Drawing]
    color_picker_open: bool
    color: str
    line_width: float


StateListener = Callable[[ToolState], None]


class ToolStateMachine:
    def __init__(
        self,
        store: DrawingStore,
        mapper: CoordinateMapper,
        *,
        tolerances: EraserTolerances = EraserTolerances(),
        color: str = "#FFFFFF",
        line_width: float = 2,
        on_state_change: Optional[StateListener] = None,
    ) -> None:
        self._store = store
        self._mapper = mapper
        self._tolerances = tolerances
        self._phase = Phase.IDLE
        self._tool: Optional[Tool] = None
        self._in_progress: Optional[Drawing] = None
        self._color_picker_open = False
        self._color = color
        self._line_width = line_width
        self._listeners: List[StateListener] = []
        if on_state_change is not None:
            self._listeners.append(on_state_change)
        self._log = get_logger("tool_state")

    # --------- Introspection ---------
    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def tool(self) -> Optional[Tool]:
        return self._tool

    @property
    def in_progress(self) -> Optional[Drawing]:
        return self._in_progress

    @property
    def color_picker_open(self) -> bool:
        return self._color_picker_open

    @property
    def state(self) -> ToolState:
        return ToolState(
            phase=self._phase,
            tool=self._tool,
            in_progress=self._in_progress,
            color_picker_open=self._color_picker_open,
            color=self._color,
            line_width=self._line_width,
        )

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # --------- Toolbar ---------
    def select_tool(self, tool: Optional[Tool]) -> None:
        """Arm `tool`; selecting the already armed tool disarms it."""
        tool = Tool(tool) if tool is not None else None
        if tool is None or tool is self._tool:
            self._go_idle()
            return
        if self._in_progress is not None:
            self._log.debug("drawing_cancelled", drawing_id=self._in_progress.id, reason="tool_switch")
        self._in_progress = None
        self._tool = tool
        self._phase = Phase.TOOL_SELECTED
        self._notify()

    def toggle_color_picker(self) -> None:
        self._color_picker_open = not self._color_picker_open
        self._notify()

    def set_color(self, color: str) -> None:
        """Pick the color for new drawings; closes the picker."""
        self._color = color
        self._color_picker_open = False
        self._notify()

    def set_line_width(self, width: float) -> None:
        if width <= 0:
            raise ValueError("line width must be > 0")
        self._line_width = width
        self._notify()

    # --------- Pointer events ---------
    def pointer_down(self, x: float, y: float) -> None:
        if self._color_picker_open or self._phase is not Phase.TOOL_SELECTED:
            return

        if self._tool is Tool.ERASER:
            self._phase = Phase.ERASING
            self._notify()
            self.erase_at(x, y)
            return

        point = self._mapper.resolve_point(x, y)
        if point is None:
            self._log.debug("pointer_unresolved", x=x, y=y, pointer="down")
            return

        drawing_type = self._tool.drawing_type if self._tool is not None else None
        if drawing_type is None:
            return
        self._in_progress = Drawing.start(drawing_type, point, self._color, self._line_width)
        self._phase = Phase.DRAWING
        self._notify()

    def pointer_move(self, x: float, y: float) -> None:
        if self._color_picker_open:
            return

        if self._phase is Phase.ERASING:
            self.erase_at(x, y)
            return

        if self._phase is not Phase.DRAWING or self._in_progress is None:
            return

        point = self._mapper.resolve_point(x, y)
        if point is None:
            return
        self._in_progress = self._in_progress.with_point(point)
        self._notify()

    def pointer_up(self) -> Optional[Drawing]:
        """End the gesture. Returns the drawing if it was persisted."""
        if self._color_picker_open:
            return None

        if self._phase is Phase.ERASING:
            self._phase = Phase.TOOL_SELECTED
            self._notify()
            return None

        if self._phase is not Phase.DRAWING or self._in_progress is None:
            return None

        drawing = replace(self._in_progress, created_at=now_seconds())
        self._in_progress = None
        self._phase = Phase.TOOL_SELECTED

        persisted = self._store.add(drawing)
        if not persisted:
            self._log.debug("drawing_discarded", drawing_id=drawing.id, points=len(drawing.points))
        self._notify()
        return drawing if persisted else None

    def pointer_leave(self) -> Optional[Drawing]:
        return self.pointer_up()

    def right_click(self) -> None:
        """Cancel whatever is going on and disarm the tool."""
        if self._color_picker_open:
            return
        self._go_idle()

    def click_outside(self) -> None:
        """A click outside the drawing surface; never interrupts a gesture."""
        if self._phase in (Phase.DRAWING, Phase.ERASING):
            return
        self._color_picker_open = False
        self._go_idle()

    # --------- Eraser ---------
    def erase_at(self, x: float, y: float) -> List[str]:
        hits: List[str] = []
        for drawing in self._store.drawings:
            coords = project_drawing(drawing, self._mapper)
            if coords is None:
                continue
            if hits_drawing(drawing, coords, x, y, self._tolerances):
                hits.append(drawing.id)
        if hits:
            self._store.remove_many(hits)
        return hits

    # --------- Internals ---------
    def _go_idle(self) -> None:
        if self._in_progress is not None:
            self._log.debug("drawing_cancelled", drawing_id=self._in_progress.id, reason="reset")
        self._in_progress = None
        self._tool = None
        self._phase = Phase.IDLE
        self._notify()

    def _notify(self) -> None:
        snapshot = self.state
        for listener in list(self._listeners):
            listener(snapshot)
