"""Error handlers registration."""

from flask import Flask, jsonify, render_template, request


def _wants_json() -> bool:
    return (
        request.accept_mimetypes.accept_json
        and not request.accept_mimetypes.accept_html
    )


def register_error_handlers(app: Flask) -> None:
    """Register common error handlers for 404, 429 and 500 responses."""

    @app.errorhandler(404)
    def not_found(error):
        if _wants_json():
            return jsonify({"error": "Not Found"}), 404
        return render_template("404.html"), 404

    @app.errorhandler(429)
    def too_many_requests(error):
        if _wants_json():
            return jsonify({"error": "Too Many Requests"}), 429
        return render_template("429.html"), 429

    @app.errorhandler(500)
    def internal_error(error):
        if _wants_json():
            return jsonify({"error": "Internal Server Error"}), 500
        return render_template("500.html"), 500
