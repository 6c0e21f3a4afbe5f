"""Remote check-in collaborator and reply classification."""

from checkinbot.client.classifier import SUCCESS_CODE, OutcomeClassifier
from checkinbot.client.http_client import CheckinClient, TransportFailure

__all__ = ["CheckinClient", "OutcomeClassifier", "SUCCESS_CODE", "TransportFailure"]
