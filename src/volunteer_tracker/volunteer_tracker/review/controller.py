from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.web import api_view, current_actor
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.daily_review_service

    @app.route("/api/events/<event_id>/daily-review/summary", methods=["GET"], endpoint="api_daily_review_summary")
    @api_view
    def api_daily_review_summary(event_id: str):
        summary = service.get_daily_review_summary(
            event_id=event_id,
            work_date=request.args.get("date", ""),
            actor=current_actor(),
        )
        return jsonify({"success": True, **summary.to_dict()})

    @app.route("/api/events/<event_id>/daily-review", methods=["GET"], endpoint="api_daily_review")
    @api_view
    def api_daily_review(event_id: str):
        rows = service.list_entries(
            event_id=event_id,
            work_date=request.args.get("date", ""),
            search=request.args.get("search", ""),
            category=request.args.get("filter", "all"),
            actor=current_actor(),
        )
        return jsonify({"success": True, "entries": [r.to_dict() for r in rows]})

    @app.route("/api/events/<event_id>/daily-review.csv", methods=["GET"], endpoint="api_daily_review_csv")
    @api_view
    def api_daily_review_csv(event_id: str):
        work_date = request.args.get("date", "")
        content = service.export_daily_review(
            event_id=event_id,
            work_date=work_date,
            search=request.args.get("search", ""),
            category=request.args.get("filter", "all"),
            actor=current_actor(),
        )
        return app.response_class(
            content.encode("utf-8-sig"),
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename=daily-review-{work_date}.csv"},
        )
