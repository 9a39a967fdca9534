from __future__ import annotations

from flask import Blueprint, make_response

from impactdeck.blueprints.content import (
    access_denied,
    content_url,
    json_error,
    public_url,
    render_wrapper,
    serve_blob_html,
    token_is_valid,
)
from impactdeck.models import Deck
from impactdeck.security.deck_token import deck_resource
from impactdeck.services.blob_storage import BlobFetchError, BlobStorage

bp = Blueprint("decks", __name__)


@bp.get("/<slug>")
def deck_page(slug: str):
    deck = Deck.get_by_slug(slug)
    if not deck or not deck.is_servable:
        return json_error("Deck not found", 404)

    src = content_url("decks.deck_content", deck_resource(slug), slug=slug)
    og = {
        "title": deck.org_name,
        "url": public_url(f"/decks/{slug}"),
        "image": public_url(f"/decks/{slug}/og-image.png") if deck.og_image_url else "",
    }
    return render_wrapper(
        title=f"{deck.org_name} | Impact Deck",
        iframe_title=f"{deck.org_name} Impact Deck",
        content_src=src,
        description=deck.mission,
        og=og,
    )


@bp.get("/<slug>/content")
def deck_content(slug: str):
    if not token_is_valid(deck_resource(slug)):
        return access_denied()

    deck = Deck.get_by_slug(slug)
    if not deck or not deck.is_servable:
        return json_error("Deck not found", 404)
    return serve_blob_html(deck.deck_url)


@bp.get("/<slug>/og-image.png")
def deck_og_image(slug: str):
    deck = Deck.get_by_slug(slug)
    if not deck or not deck.og_image_url:
        return json_error("OG image not found", 404)

    try:
        data = BlobStorage.fetch_bytes(deck.og_image_url)
    except BlobFetchError:
        return json_error("Failed to fetch OG image", 502)

    resp = make_response(data, 200)
    resp.headers["Content-Type"] = "image/png"
    resp.headers["Cache-Control"] = "public, max-age=86400"
    return resp
