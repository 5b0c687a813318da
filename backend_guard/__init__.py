"""
Backend Guard: AI-assisted smart-contract audit and on-chain attestation core.

Sends contract source to an LLM analyzer, normalizes its findings into a
deterministic risk score and certification tier, hashes the report and
prepares an unsigned registry transaction for the wallet client to sign.
"""

__version__ = "0.1.0"
