import json
import sys
from pathlib import Path
from typing import Optional

import typer
from loguru import logger

from cattle_webhook.admission.admission_controller import AdmissionController
from cattle_webhook.collaborators import StaticAuthorizer, StaticSettingLookup, StaticUserLookup
from cattle_webhook.exceptions import WebhookException
from cattle_webhook.server import configure_logging
from cattle_webhook.services.webhook import run

app = typer.Typer(no_args_is_help=True)


def _load_json(path: Optional[Path]) -> dict:
    if path is None:
        return {}
    with open(path, "r") as f:
        return json.load(f)


def serve():
    run()


def evaluate(
    review: Path = typer.Argument(..., exists=True, help="AdmissionReview JSON file"),
    users: Optional[Path] = typer.Option(None, help="JSON object of user name to principal IDs"),
    settings: Optional[Path] = typer.Option(None, help="JSON object of setting name to value"),
    deny_authorization: bool = typer.Option(False, help="Answer every access review with a denial"),
    debug: bool = typer.Option(False, help="Enable debug logging"),
):
    configure_logging(debug, level="WARNING")
    try:
        controller = AdmissionController(
            users=StaticUserLookup(_load_json(users)),
            settings=StaticSettingLookup(_load_json(settings)),
            authorizer=StaticAuthorizer(allowed=not deny_authorization),
        )
        allowed, response = controller.validate_request(_load_json(review))
    except (WebhookException, ValueError) as e:
        logger.error(f"Failed to evaluate admission review:\n{e}")
        sys.exit(2)

    print(json.dumps(response, indent=2))
    sys.exit(0 if allowed else 1)


app.command(name="serve", help="Run the admission webhook server.")(serve)
app.command(name="evaluate", help="Evaluate an AdmissionReview file offline.")(evaluate)

if __name__ == "__main__":
    app()
