# brokerage_oracle/cli.py
"""
Brokerage position oracle CLI.

Usage:
  brokerage-oracle provision [--slot-id N] [--ttl-minutes M] [--quorum Q]
  brokerage-oracle simulate
  brokerage-oracle decode <hex>
  brokerage-oracle gateway [--port 9200]

Configuration is read from the environment once, here, and passed down.
"""

import argparse
import logging
import sys

from coincurve import PrivateKey

from . import codec
from .bundle import SecretBundle, build_secret_bundle, position_url
from .config import Settings
from .distribution import SecretDistributor, SlotLedger
from .encryption import SecretEncryptor, Signer
from .errors import MissingCredential, OracleError
from .executor import RequestExecutor

log = logging.getLogger("brokerage-oracle")


def provision(settings: Settings, session=None):
    """Bundle -> encrypt -> distribute, once. Returns the distribution record."""
    bundle = build_secret_bundle(settings)
    if not settings.private_key:
        raise MissingCredential("missing credential(s): PRIVATE_KEY")
    if not settings.don_public_key:
        raise MissingCredential("missing credential(s): DON_PUBLIC_KEY")

    signer = Signer(settings.private_key)
    log.info(f"Signer: {signer.identity}")

    blob = SecretEncryptor(signer, settings.don_public_key).encrypt(bundle, settings.don_id)
    log.info(f"Encrypted secrets for {blob.don_id} ({len(blob.ciphertext)} bytes)")

    distributor = SecretDistributor(
        signer,
        settings.gateway_urls,
        quorum=settings.quorum,
        timeout=settings.gateway_timeout,
        session=session,
    )
    record = distributor.distribute(blob, settings.slot_id, settings.ttl_minutes)
    path = SlotLedger(settings.data_dir).save(record)
    log.info(f"Slot record saved to {path}")
    return record


def simulate(settings: Settings, session=None):
    """Run the job locally against plaintext secrets."""
    secrets = SecretBundle(
        api_key=settings.api_key,
        api_secret=settings.api_secret,
        api_url=position_url(settings.api_url),
    )
    return RequestExecutor(secrets, session=session, timeout=settings.fetch_timeout).run()


def cmd_provision(args, settings):
    if args.slot_id is not None:
        settings.slot_id = args.slot_id
    if args.ttl_minutes is not None:
        settings.ttl_minutes = args.ttl_minutes
    if args.quorum is not None:
        settings.quorum = args.quorum

    record = provision(settings)
    print(f"\n✅ Secrets uploaded successfully to slot {record.slot_id}")
    print(f"Secrets version: {record.version}")
    print(f"Expires at:      {record.expires_at.strftime('%Y-%m-%dT%H:%M:%SZ')}")
    failed = [r for r in record.gateway_results if not r.success]
    for r in failed:
        print(f"  ⚠  {r.url}: {r.error}")
    return 0


def cmd_simulate(args, settings):
    result = simulate(settings)
    if result.error is not None:
        print(f"TSLA Balance Error: {result.error}")
        return 1
    print(f"TSLA Balance Response: {codec.decode(result.result)}")
    print(f"  Raw: {result.hexstring}")
    return 0


def cmd_decode(args, settings):
    print(codec.decode(args.hexstring))
    return 0


def cmd_gateway(args, settings):
    import uvicorn

    from .gateway import create_app

    don_key = settings.don_private_key
    if not don_key:
        don_key = PrivateKey().to_hex()
        log.info("DON_PRIVATE_KEY not set, generated an ephemeral DON key")
    pubkey = PrivateKey.from_hex(don_key.removeprefix("0x")).public_key.format().hex()

    print(f"Dev gateway for {settings.don_id} starting on :{args.port}")
    print(f"  DON public key: {pubkey}")
    uvicorn.run(create_app(settings.don_id, don_key), host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="brokerage-oracle",
        description="Brokerage position oracle: provision secrets and simulate the job",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("provision", help="Encrypt and upload secrets to the DON gateways")
    p.add_argument("--slot-id", type=int, default=None, help="Secrets slot (default: SECRETS_SLOT_ID or 0)")
    p.add_argument("--ttl-minutes", type=int, default=None, help="Minutes until expiry (default: 1440)")
    p.add_argument("--quorum", type=int, default=None, help="Gateway acknowledgements required")
    p.set_defaults(func=cmd_provision)

    p = sub.add_parser("simulate", help="Run the position job locally with plaintext secrets")
    p.set_defaults(func=cmd_simulate)

    p = sub.add_parser("decode", help="Decode a uint256 job result to a decimal")
    p.add_argument("hexstring", help="0x-prefixed 32-byte result")
    p.set_defaults(func=cmd_decode)

    p = sub.add_parser("gateway", help="Run a local dev gateway")
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=int, default=9200)
    p.set_defaults(func=cmd_gateway)

    return parser


def main(argv=None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%SZ",
    )
    args = build_parser().parse_args(argv)
    try:
        settings = Settings.from_env()
        return args.func(args, settings)
    except (OracleError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
