import logging
import os

from flask import Flask, jsonify
from tinydb import TinyDB
from tinydb.storages import MemoryStorage

from folding_routes import folding_bp, init_folding_bp


def open_db(path=None):
    """SANGRIA_DB 경로의 TinyDB. ":memory:"이면 메모리 DB."""
    path = path or os.environ.get("SANGRIA_DB", "db.json")
    if path == ":memory:":
        return TinyDB(storage=MemoryStorage)  # Memory DB
    return TinyDB(path)                       # Storage DB


def create_app(db=None):
    app = Flask(__name__)
    app.secret_key = os.environ.get("SANGRIA_SECRET_KEY", "key")

    DB = db if db is not None else open_db()
    init_folding_bp(DB.table("folding"))
    app.register_blueprint(folding_bp)

    @app.route("/")
    def main():
        return jsonify({
            "name": "sangria-folding",
            "endpoints": sorted(
                str(rule) for rule in app.url_map.iter_rules()
                if rule.endpoint != "static"
            ),
        })

    return app


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    create_app().run(debug=True)
