import os

# Force production env if the platform didn't set one
os.environ.setdefault("IMPACTDECK_ENV", "production")

from impactdeck import create_app  # noqa: E402

app = create_app()
