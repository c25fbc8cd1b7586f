"""Command line front end for Sentiment Wizard."""

from sentiment_wizard.cli.main import app

__all__ = ["app"]
