from __future__ import annotations

from ..extensions import db
from skinshop.time_utils import to_utc_z


class Routine(db.Model):
    """Skincare routine recommended for one skin type: an ordered list of steps."""
    __tablename__ = "routines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    skin_id = db.Column(db.Integer, db.ForeignKey("skins.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    skin = db.relationship("Skin")
    steps = db.relationship(
        "RoutineStep",
        backref="routine",
        lazy=True,
        order_by="RoutineStep.position",
        cascade="all, delete-orphan",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "skin_id": self.skin_id,
            "name": self.name,
            "steps": [step.to_dict() for step in self.steps],
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class RoutineStep(db.Model):
    __tablename__ = "routine_steps"
    __table_args__ = (
        db.UniqueConstraint("routine_id", "position", name="uq_routine_steps_position"),
        db.CheckConstraint("position >= 1", name="ck_routine_steps_position_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    routine_id = db.Column(db.Integer, db.ForeignKey("routines.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)
    description = db.Column(db.Text, nullable=False)

    def to_dict(self) -> dict:
        return {
            "order": self.position,
            "description": self.description,
        }
