# Overview: Service-layer operations for skincare routines per skin type.

"""
Routine Service

A routine belongs to one skin type and holds ordered steps
[{"order": 1, "description": "..."}]. Updating steps replaces the whole list.
"""

from __future__ import annotations

from ..extensions import db
from ..models import Routine, RoutineStep, Skin


class RoutineError(Exception):
    """Raised for routine operation errors."""
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


def _parse_steps(raw_steps) -> list[RoutineStep]:
    if not isinstance(raw_steps, list) or not raw_steps:
        raise RoutineError("steps must be a non-empty list")

    steps = []
    seen = set()
    for index, raw in enumerate(raw_steps):
        if not isinstance(raw, dict):
            raise RoutineError(f"steps[{index}] must be an object")
        position = raw.get("order")
        if isinstance(position, bool) or not isinstance(position, int) or position < 1:
            raise RoutineError(f"steps[{index}].order must be an integer >= 1")
        if position in seen:
            raise RoutineError(f"steps[{index}].order {position} is duplicated")
        description = raw.get("description")
        if not isinstance(description, str) or not description.strip():
            raise RoutineError(f"steps[{index}].description is required")
        seen.add(position)
        steps.append(RoutineStep(position=position, description=description.strip()))

    return sorted(steps, key=lambda s: s.position)


def _require_skin(skin_id) -> Skin:
    skin = db.session.get(Skin, skin_id) if isinstance(skin_id, int) else None
    if skin is None:
        raise RoutineError(f"Skin type {skin_id} not found", status_code=404)
    return skin


def list_routines(*, skin_id: int | None = None) -> list[Routine]:
    query = db.session.query(Routine)
    if skin_id is not None:
        query = query.filter(Routine.skin_id == skin_id)
    return query.order_by(Routine.id.asc()).all()


def create_routine(*, skin_id, name, steps) -> Routine:
    name = name.strip() if isinstance(name, str) else ""
    if not skin_id or not name or not steps:
        raise RoutineError("skin, name and steps are required")

    skin = _require_skin(skin_id)
    routine = Routine(skin_id=skin.id, name=name)
    routine.steps = _parse_steps(steps)

    db.session.add(routine)
    db.session.commit()
    return routine


def update_routine(routine_id: int, *, name=None, steps=None) -> Routine:
    routine = db.session.get(Routine, routine_id)
    if routine is None:
        raise RoutineError("Routine not found", status_code=404)

    if name is not None:
        name = name.strip() if isinstance(name, str) else ""
        if not name:
            raise RoutineError("name cannot be blank")
        routine.name = name

    if steps is not None:
        new_steps = _parse_steps(steps)
        routine.steps.clear()
        # Old rows must be gone before new rows reuse their positions
        db.session.flush()
        routine.steps.extend(new_steps)

    db.session.commit()
    return routine


def delete_routine(routine_id: int) -> bool:
    routine = db.session.get(Routine, routine_id)
    if routine is None:
        return False
    db.session.delete(routine)
    db.session.commit()
    return True
