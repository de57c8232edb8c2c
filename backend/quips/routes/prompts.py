from __future__ import annotations

from flask import Blueprint, jsonify

from ..game.prompts import PROMPT_CATEGORIES

bp = Blueprint("prompts", __name__)


@bp.get("/prompts/categories")
def get_categories():
    return jsonify({"categories": list(PROMPT_CATEGORIES)})
