from __future__ import annotations

import io

from flask import Flask, jsonify, request, send_file

from ..common.web import api_view, current_actor, json_body
from ..container import Container
from ..qr.badge import render_badge_png


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service

    @app.route("/api/attendance/check-in", methods=["POST"], endpoint="api_check_in")
    @api_view
    def api_check_in():
        data = json_body()
        result = service.check_in(
            participant_id=data.get("participantId"),
            event_id=data.get("eventId"),
            activity_id=data.get("activityId"),
            method=data.get("method"),
            actor=current_actor(),
        )
        return jsonify(result.to_dict())

    @app.route("/api/attendance/check-out", methods=["POST"], endpoint="api_check_out")
    @api_view
    def api_check_out():
        data = json_body()
        result = service.check_out(
            participant_id=data.get("participantId"),
            event_id=data.get("eventId"),
            activity_id=data.get("activityId"),
            method=data.get("method"),
            actor=current_actor(),
        )
        return jsonify(result.to_dict())

    @app.route("/api/attendance/scan", methods=["POST"], endpoint="api_scan")
    @api_view
    def api_scan():
        """Badge scan: the same code checks in, then checks out."""
        data = json_body()
        result = service.scan(
            token=data.get("token"),
            activity_id=data.get("activityId"),
            method=data.get("method"),
            actor=current_actor(),
        )
        return jsonify(result.to_dict())

    @app.route("/api/attendance/manual", methods=["POST"], endpoint="api_manual_entry")
    @api_view
    def api_manual_entry():
        data = json_body()
        result = service.create_manual_entry(
            participant_id=data.get("participantId"),
            event_id=data.get("eventId"),
            activity_id=data.get("activityId"),
            work_date=data.get("date"),
            start_time=data.get("startTime"),
            end_time=data.get("endTime"),
            actor=current_actor(),
        )
        return jsonify(result.to_dict()), 201

    @app.route("/api/participants/<participant_id>/badge.png", methods=["GET"], endpoint="api_badge_image")
    @api_view
    def api_badge_image(participant_id: str):
        token = service.badge_token(
            participant_id=participant_id,
            event_id=request.args.get("eventId", ""),
            actor=current_actor(),
        )
        return send_file(io.BytesIO(render_badge_png(token)), mimetype="image/png")
