"""WSGI entry point for Bucketly."""

import os

from flask import jsonify

from bucketly import create_app

app = create_app()


@app.route("/health")
def health_check():
    """Liveness probe for the hosting platform."""
    return jsonify({"status": "ok"}), 200


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5000))
    app.run(debug=True, host="0.0.0.0", port=port)  # nosec
