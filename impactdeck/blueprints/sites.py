from __future__ import annotations

import logging

from flask import Blueprint, jsonify, make_response, render_template

from impactdeck.blueprints.content import (
    access_denied,
    content_url,
    flag,
    json_error,
    public_url,
    render_wrapper,
    serve_blob_html,
    token_is_valid,
)
from impactdeck.extensions import safe_commit
from impactdeck.helpers.urls import hostname, sanitize_url
from impactdeck.models import Deck, Organization
from impactdeck.security.deck_token import org_resource, site_resource

log = logging.getLogger(__name__)

bp = Blueprint("sites", __name__)


def _count_view(deck: Deck) -> None:
    Deck.increment_views(deck.slug)
    safe_commit()


def _favicon_for(org: Organization) -> str:
    host = hostname(sanitize_url(org.website_url))
    return f"https://www.google.com/s2/favicons?domain={host}&sz=32" if host else ""


# ─────────────────────────────────────────────────────────────
# Organization deck (/s/<org_slug>)
# ─────────────────────────────────────────────────────────────
@bp.get("/<org_slug>")
def org_page(org_slug: str):
    org = Organization.get_by_slug(org_slug)
    if not org:
        return json_error("Organization not found", 404, slug=org_slug)

    deck = org.primary_deck()
    if not deck or not deck.is_servable:
        return json_error("No deck found for this organization", 404, orgSlug=org_slug)

    _count_view(deck)

    if flag("debug"):
        return jsonify(
            {
                "orgSlug": org_slug,
                "orgId": org.id,
                "orgName": org.name,
                "deckId": deck.id,
                "deckSlug": deck.slug,
                "claimed": flag("claimed"),
            }
        )

    src = content_url("sites.org_content", org_resource(org_slug), org_slug=org_slug)
    return render_wrapper(
        title=f"{org.name} | Impact Deck",
        iframe_title=f"{org.name} Impact Deck",
        content_src=src,
        description=deck.mission,
        show_claim_toast=flag("claimed"),
    )


@bp.get("/<org_slug>/content")
def org_content(org_slug: str):
    if not token_is_valid(org_resource(org_slug)):
        return access_denied()

    org = Organization.get_by_slug(org_slug)
    if not org:
        return json_error("Organization not found", 404)

    deck = org.primary_deck()
    if not deck or not deck.is_servable:
        return json_error("No deck found", 404)
    return serve_blob_html(deck.deck_url)


# ─────────────────────────────────────────────────────────────
# Generated website (/s/<org_slug>/site)
# ─────────────────────────────────────────────────────────────
@bp.get("/<org_slug>/site")
def site_page(org_slug: str):
    org = Organization.get_by_slug(org_slug)
    if not org:
        return json_error("Organization not found", 404)

    deck = org.primary_deck()
    if not org.website_html_url:
        html = render_template(
            "errors/site_not_found.html",
            org_name=org.name,
            deck_url=f"/s/{org_slug}" if deck and deck.is_servable else "",
        )
        resp = make_response(html, 404)
        resp.headers["Content-Type"] = "text/html; charset=utf-8"
        return resp

    description = (deck.mission if deck else None) or (
        f"Learn about {org.name} and how you can make a difference."
    )
    og = {
        "title": org.name,
        "url": public_url(f"/s/{org_slug}/site"),
        "image": (deck.og_image_url or "") if deck else "",
    }
    src = content_url("sites.site_content", site_resource(org_slug), org_slug=org_slug)
    return render_wrapper(
        title=f"{org.name} | Official Website",
        iframe_title=f"{org.name} Website",
        content_src=src,
        description=description,
        og=og,
        favicon_url=_favicon_for(org),
        background="#fff",
    )


@bp.get("/<org_slug>/site/content")
def site_content(org_slug: str):
    if not token_is_valid(site_resource(org_slug)):
        return access_denied()

    org = Organization.get_by_slug(org_slug)
    if not org or not org.website_html_url:
        return json_error("Website not found", 404)
    return serve_blob_html(org.website_html_url, failure_message="Failed to fetch website")


# ─────────────────────────────────────────────────────────────
# Personalized thank-you decks (/s/<org_slug>/thankyou/<donor_slug>)
# ─────────────────────────────────────────────────────────────
@bp.get("/<org_slug>/thankyou/<donor_slug>")
def thankyou_page(org_slug: str, donor_slug: str):
    org = Organization.get_by_slug(org_slug)
    if not org:
        return json_error("Organization not found", 404, orgSlug=org_slug)

    deck = org.thankyou_deck(donor_slug)
    if deck and deck.is_servable:
        _count_view(deck)
        if flag("debug"):
            return jsonify(
                {
                    "orgSlug": org_slug,
                    "donorSlug": donor_slug,
                    "orgId": org.id,
                    "deckId": deck.id,
                    "deckSlug": deck.slug,
                    "donorName": deck.donor_name,
                    "donorAmount": deck.donor_amount,
                }
            )
        return serve_blob_html(deck.deck_url)

    generic = org.thankyou_deck()
    if not generic or not generic.is_servable:
        return json_error("Personalized deck not found", 404, orgSlug=org_slug, donorSlug=donor_slug)

    log.info("No personalized deck for %s/%s, serving generic thank-you", org_slug, donor_slug)
    return serve_blob_html(generic.deck_url)
