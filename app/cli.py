"""Certificate verification commands.

Commands:
    opencerts verify <file>               Run every check against a certificate
    opencerts digest <file>               Compute the document digest
    opencerts chain <target> [proof...]   Rebuild the Merkle hash chain
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, List, Optional

import typer

from app.opencerts.certificate import parse_certificate
from app.opencerts.exceptions import CertificateParseError

EXIT_SUCCESS = 0
EXIT_VALIDATION_FAILURE = 1
EXIT_PARSE_ERROR = 2

app = typer.Typer(
    name="opencerts",
    help="Verify OpenCerts certificates.",
    no_args_is_help=True,
)


def read_input(source: str) -> str:
    """Read a file path, or stdin when source is '-'."""
    if source == "-":
        return sys.stdin.read()
    path = Path(source)
    if not path.exists():
        output_error("INPUT_NOT_FOUND", f"File not found: {source}", EXIT_PARSE_ERROR)
    return path.read_text(encoding="utf-8")


def output(result: Any) -> None:
    typer.echo(json.dumps(result, indent=2, ensure_ascii=False))


def output_error(code: str, message: str, exit_code: int) -> None:
    typer.echo(json.dumps({"error": {"code": code, "message": message}}), err=True)
    raise typer.Exit(exit_code)


def _load_certificate(source: str):
    try:
        document = json.loads(read_input(source))
    except json.JSONDecodeError as e:
        output_error("CERTIFICATE_INVALID", f"Certificate is not valid JSON: {e}", EXIT_PARSE_ERROR)
    try:
        return parse_certificate(document)
    except CertificateParseError as e:
        output_error(e.code, e.message, EXIT_PARSE_ERROR)


@app.command("verify")
def verify_cmd(
    source: str = typer.Argument(..., help="Certificate file path, or '-' for stdin"),
    rpc_url: Optional[str] = typer.Option(
        None, "--rpc-url", help="Ethereum JSON-RPC endpoint (overrides OPENCERTS_ETH_RPC_URL)"
    ),
    registry_url: Optional[str] = typer.Option(
        None, "--registry-url", help="Issuer registry URL (overrides OPENCERTS_REGISTRY_URL)"
    ),
) -> None:
    """Run the store, issuer, hash, issued and revocation checks.

    Exits 0 when every check passes, 1 when any check fails.

    Examples:
        opencerts verify certificate.opencert
        cat certificate.opencert | opencerts verify -
    """
    from app.opencerts.clients import build_orchestrator
    from app.opencerts.reporting import NullAnalytics

    certificate = _load_certificate(source)
    orchestrator = build_orchestrator(
        analytics=NullAnalytics(), rpc_url=rpc_url, registry_url=registry_url
    )
    result = asyncio.run(orchestrator.verify_certificate(certificate))

    output({
        "valid": result.valid,
        "names": result.names,
        "events": [e.model_dump(mode="json", exclude_none=True) for e in result.events],
    })
    if not result.valid:
        raise typer.Exit(EXIT_VALIDATION_FAILURE)


@app.command("digest")
def digest_cmd(
    source: str = typer.Argument(..., help="Certificate file path, or '-' for stdin"),
) -> None:
    """Compute the digest of the certificate data and compare it to the target hash."""
    from app.opencerts.digest import digest_document, verify_signature

    certificate = _load_certificate(source)
    digest = digest_document(certificate.data, list(certificate.obfuscated_data))
    output({
        "digest": digest,
        "target_hash": certificate.target_hash,
        "matches_target": digest == certificate.target_hash,
        "signature_valid": verify_signature(certificate),
    })


@app.command("chain")
def chain_cmd(
    target: str = typer.Argument(..., help="Target (leaf) hash"),
    proof: Optional[List[str]] = typer.Argument(None, help="Proof hashes, leaf to root"),
) -> None:
    """Rebuild the hash chain from a target hash through its proof."""
    from app.opencerts.merkle import build_chain

    try:
        chain = build_chain(target, proof or [])
    except ValueError as e:
        output_error("HASH_INVALID", str(e), EXIT_PARSE_ERROR)
    output({"chain": list(chain)})


if __name__ == "__main__":
    app()
