import os

# Force production env unless the deployment says otherwise
os.environ.setdefault("ENV", "production")

from hopefund import create_app  # noqa: E402

app = create_app()
