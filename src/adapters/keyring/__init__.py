"""Signing authority adapters - OpenPGP keyrings."""

from .pgp import PgpSigningAuthority, SigningKeyring, load_signing_key, load_signing_keyring

__all__ = ["PgpSigningAuthority", "SigningKeyring", "load_signing_key", "load_signing_keyring"]
