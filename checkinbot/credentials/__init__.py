"""Credential loading, masking, and offline usability checks."""

from checkinbot.credentials.gate import CredentialGate
from checkinbot.credentials.loader import load_credentials, mask_credential

__all__ = ["CredentialGate", "load_credentials", "mask_credential"]
