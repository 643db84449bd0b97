"""Identifier helpers."""

import secrets
import uuid

# No 0/O or 1/I so codes can be read aloud at the door
CONFIRMATION_CODE_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'
CONFIRMATION_CODE_LENGTH = 6


def generate_id():
    """Opaque unique id for tasks, offers, threads and messages."""
    return uuid.uuid4().hex


def generate_confirmation_code():
    """Human-readable code used for in-person verification (not a secret)."""
    return ''.join(secrets.choice(CONFIRMATION_CODE_ALPHABET) for _ in range(CONFIRMATION_CODE_LENGTH))
