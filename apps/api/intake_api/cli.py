"""CLI tools for intake operators."""

import secrets

import click

from intake_api.core.security import compute_envelope_signature
from intake_api.services.envelope_service import normalize_intake_id


@click.group()
def cli():
    """Sealed intake CLI tools."""
    pass


@cli.command()
@click.option("--bytes", "num_bytes", default=32, show_default=True, help="Entropy in bytes")
def generate_secret(num_bytes: int):
    """
    Generate a random hex secret.

    Use for INTAKE_IP_SALT or INTAKE_HMAC_SECRET.

    Example:
        intake-api generate-secret --bytes 32
    """
    click.echo(secrets.token_hex(num_bytes))


@cli.command()
@click.option("--secret", required=True, envvar="INTAKE_HMAC_SECRET", help="Shared HMAC secret")
@click.option("--id", "intake_id", required=True, help="Submission id (64 hex chars, any casing)")
@click.option("--ciphertext-file", type=click.File("r", encoding="utf-8"), required=True,
              help="File holding the exact 'encrypted' string ('-' for stdin)")
def sign(secret: str, intake_id: str, ciphertext_file):
    """
    Compute the X-Intake-HMAC header for an envelope.

    The id is lowercased first, exactly as the server does before verifying.
    """
    normalized = normalize_intake_id(intake_id)
    if normalized is None:
        raise click.BadParameter("id must be 64 hex characters", param_hint="--id")
    ciphertext = ciphertext_file.read()
    click.echo(compute_envelope_signature(secret, normalized, ciphertext))


if __name__ == "__main__":
    cli()
