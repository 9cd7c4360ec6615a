from __future__ import annotations

from flask import Flask, jsonify

from ..common.web import api_view, current_actor, json_body
from ..container import Container
from ..core.exceptions import ValidationError

CHECKOUT_TIMES_FIELD = "perActivityCheckOutTimes"
CHECKOUT_TIMES_ALIAS = "activityCheckOutTimes"


def _activity_check_out_times(data: dict):
    value = data.get(CHECKOUT_TIMES_FIELD)
    alias = data.get(CHECKOUT_TIMES_ALIAS)
    if value is not None and alias is not None and value != alias:
        raise ValidationError(f"{CHECKOUT_TIMES_FIELD} and {CHECKOUT_TIMES_ALIAS} disagree; send one of them")
    return value if value is not None else alias


def register(app: Flask, container: Container) -> None:
    corrections = container.correction_service
    forced = container.forced_checkout_service

    @app.route("/api/entries/<int:record_id>/edit", methods=["POST"], endpoint="api_edit_entry")
    @api_view
    def api_edit_entry(record_id: int):
        data = json_body()
        result = corrections.edit_entry(
            record_id=record_id,
            new_check_in_time=data.get("newCheckInTime"),
            new_check_out_time=data.get("newCheckOutTime"),
            reason=data.get("reason"),
            actor=current_actor(),
        )
        return jsonify(result.to_dict())

    @app.route("/api/entries/<int:record_id>/force-checkout", methods=["POST"], endpoint="api_force_checkout")
    @api_view
    def api_force_checkout(record_id: int):
        data = json_body()
        result = forced.force_check_out(
            record_id=record_id,
            check_out_time=data.get("checkOutTime"),
            reason=data.get("reason"),
            actor=current_actor(),
        )
        return jsonify(result.to_dict())

    @app.route("/api/events/<event_id>/force-checkout", methods=["POST"], endpoint="api_force_all_checkout")
    @api_view
    def api_force_all_checkout(event_id: str):
        data = json_body()
        result = forced.force_all_check_out(
            event_id=event_id,
            work_date=data.get("date"),
            reason=data.get("reason"),
            activity_check_out_times=_activity_check_out_times(data),
            actor=current_actor(),
        )
        return jsonify(result.to_dict())

    @app.route("/api/entries/<int:record_id>/void", methods=["POST"], endpoint="api_void_entry")
    @api_view
    def api_void_entry(record_id: int):
        data = json_body()
        result = corrections.void_entry(record_id=record_id, void_reason=data.get("voidReason"), actor=current_actor())
        return jsonify(result.to_dict())

    @app.route("/api/entries/<int:record_id>/restore", methods=["POST"], endpoint="api_restore_entry")
    @api_view
    def api_restore_entry(record_id: int):
        result = corrections.restore_entry(record_id=record_id, actor=current_actor())
        return jsonify(result.to_dict())
