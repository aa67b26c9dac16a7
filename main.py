#!/usr/bin/env python3
"""
Admission policy decision point - CLI.
Reviews AdmissionReview documents offline (files or stdin) with the same engine the
webhook uses.
"""

import argparse
import logging
import sys
from dataclasses import replace
from typing import Optional

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s", stream=sys.stderr
)

EXIT_MALFORMED = 2
EXIT_CONFIG = 3


def list_rules() -> None:
    """Print registered rules (id + description) and the kinds the extractor understands."""
    from admission.core.config import load_admission_config
    from admission.pipeline.extract import supported_kinds
    from admission.rules.registry import get_default_registry

    cfg = load_admission_config()
    reg = get_default_registry()
    print(f"\n{len(reg.rules)} registered rule(s):\n")
    for r in reg.rules:
        marker = "*" if r.rule_id in cfg.rules else " "
        print(f"  {marker} {r.rule_id:<16} {r.description}")
    print("\n  (* = active under current configuration)\n")
    kinds = supported_kinds()
    print(f"{len(kinds)} supported kind(s):\n")
    for gvk in kinds:
        print(f"    {gvk}")
    print()


def review_file(
    path: Optional[str],
    *,
    rules: Optional[str] = None,
    unsupported_kind: Optional[str] = None,
    message_policy: Optional[str] = None,
) -> int:
    """
    Review one AdmissionReview document and print the response document.

    Args:
        path: JSON file path; stdin when omitted
        rules: comma-separated rule ids overriding ADMISSION_RULES

    Returns:
        Process exit code (0 for any decision, non-zero for engine failures)
    """
    from admission.core.config import MESSAGE_POLICIES, UNSUPPORTED_KIND_POLICIES, load_admission_config
    from admission.core.errors import ConfigError, MalformedEnvelope
    from admission.pipeline.review import review_bytes

    try:
        cfg = load_admission_config()
        logging.getLogger().setLevel(getattr(logging, cfg.log_level, logging.INFO))
        if rules:
            cfg = replace(cfg, rules=tuple(x.strip() for x in rules.split(",") if x.strip()))
        if unsupported_kind:
            if unsupported_kind not in UNSUPPORTED_KIND_POLICIES:
                raise ConfigError(f"--unsupported-kind must be one of {', '.join(UNSUPPORTED_KIND_POLICIES)}")
            cfg = replace(cfg, unsupported_kind_policy=unsupported_kind)
        if message_policy:
            if message_policy not in MESSAGE_POLICIES:
                raise ConfigError(f"--message-policy must be one of {', '.join(MESSAGE_POLICIES)}")
            cfg = replace(cfg, message_policy=message_policy)

        if path:
            with open(path, "rb") as f:
                payload = f.read()
        else:
            payload = sys.stdin.buffer.read()

        out = review_bytes(payload, config=cfg)
    except MalformedEnvelope as e:
        print(f"Error: Malformed admission review: {e.detail}", file=sys.stderr)
        return EXIT_MALFORMED
    except ConfigError as e:
        print(f"Error: Invalid admission configuration: {e}", file=sys.stderr)
        return EXIT_CONFIG

    print(out.decode("utf-8"))
    return 0


def main() -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Validate admission review documents against the configured policy rules",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Review a document from a file
  python main.py --review-file review.json

  # Review from stdin with both env rules enabled
  cat review.json | python main.py --rules deny_env_vars,deny_env_from

  # Show known rules
  python main.py --list-rules
        """,
    )

    parser.add_argument("--list-rules", action="store_true", help="List registered admission rules and exit")
    parser.add_argument(
        "--review-file",
        help="Path to a JSON AdmissionReview document. If omitted, reads stdin.",
    )
    parser.add_argument("--rules", help="Comma-separated rule ids (overrides ADMISSION_RULES)")
    parser.add_argument(
        "--unsupported-kind",
        choices=["allow", "deny"],
        help="Policy for kinds the extractor cannot interpret (overrides ADMISSION_UNSUPPORTED_KIND)",
    )
    parser.add_argument(
        "--message-policy",
        choices=["first", "combined"],
        help="Denial message policy (overrides ADMISSION_MESSAGE_POLICY)",
    )

    args = parser.parse_args()

    if args.list_rules:
        list_rules()
        return 0

    return review_file(
        args.review_file,
        rules=args.rules,
        unsupported_kind=args.unsupported_kind,
        message_policy=args.message_policy,
    )


if __name__ == "__main__":
    sys.exit(main())
