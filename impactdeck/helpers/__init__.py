from impactdeck.helpers.donors_csv import DonorCSVError, DonorRow, parse_donor_csv
from impactdeck.helpers.slugs import SlugCollisionError, donor_slug, is_valid_slug, org_slug, unique_slug
from impactdeck.helpers.urls import is_private_url, sanitize_url

__all__ = [
    "DonorCSVError",
    "DonorRow",
    "SlugCollisionError",
    "donor_slug",
    "is_private_url",
    "is_valid_slug",
    "org_slug",
    "parse_donor_csv",
    "sanitize_url",
    "unique_slug",
]
