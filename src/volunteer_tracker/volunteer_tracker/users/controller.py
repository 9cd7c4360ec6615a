from __future__ import annotations

import logging

from flask import Flask, jsonify, session

from ..common.web import api_view, json_body
from ..container import Container

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    @app.route("/api/login", methods=["POST"], endpoint="api_login")
    @api_view
    def api_login():
        data = json_body()
        s_user = container.auth_service.authenticate(data.get("username", ""), data.get("password", ""))

        session.clear()
        session["user_id"] = s_user.user_id
        session["name"] = s_user.full_name
        session["role"] = s_user.role.value

        logger.info("Login user=%s role=%s", s_user.user_id, s_user.role.value)
        return jsonify(
            {"success": True, "userId": s_user.user_id, "fullName": s_user.full_name, "role": s_user.role.value}
        )

    @app.route("/api/logout", methods=["POST"], endpoint="api_logout")
    def api_logout():
        session.clear()
        return jsonify({"success": True, "message": "Logged out"})
