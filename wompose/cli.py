"""
CLI for wompose - Docker Compose to Kubernetes converter.

Commands:
    convert     Generate K8s manifests for a compose file
    parse       Parse and display a compose file
"""

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from .converter import convert_compose
from .errors import ConversionError
from .parser import (
    load_compose_file,
    load_convert_options,
    parse_compose_document,
)
from .serializer import join_documents
from .types import (
    ControllerType,
    ConvertOptions,
    Provider,
    VolumeType,
)


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="wompose",
        description="Convert Docker Compose to Kubernetes manifests",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # convert command
    convert_parser = subparsers.add_parser(
        "convert",
        help="Generate K8s manifests for a compose file",
    )
    convert_parser.add_argument(
        "path",
        help="Compose file, or directory containing one",
    )
    convert_parser.add_argument(
        "-o", "--output",
        help="Output directory (default: stdout)",
    )
    convert_parser.add_argument(
        "--options",
        help="YAML/JSON file with conversion options",
    )
    convert_parser.add_argument(
        "--provider",
        choices=[p.value for p in Provider],
        help="Target platform (default: kubernetes)",
    )
    convert_parser.add_argument(
        "--controller",
        choices=[c.value for c in ControllerType],
        help="Default workload controller (default: deployment)",
    )
    convert_parser.add_argument(
        "--replicas",
        type=int,
        help="Default replica count (default: 1)",
    )
    convert_parser.add_argument(
        "--volume-type",
        choices=[v.value for v in VolumeType],
        help="Volume source for compose volumes (default: persistentVolumeClaim)",
    )
    convert_parser.add_argument(
        "--json",
        action="store_true",
        default=None,
        help="Output JSON instead of YAML",
    )
    convert_parser.add_argument(
        "--with-annotations",
        action="store_true",
        default=None,
        help="Add the wompose.version annotation to generated resources",
    )
    convert_parser.add_argument(
        "--network-policies",
        action="store_true",
        default=None,
        help="Generate NetworkPolicies from depends_on",
    )
    convert_parser.add_argument(
        "--pvc-size",
        help="Default PVC storage request (default: 100Mi)",
    )
    convert_parser.add_argument(
        "--namespace",
        help="Target namespace (reserved)",
    )

    # parse command
    parse_parser = subparsers.add_parser(
        "parse",
        help="Parse and display a compose file",
    )
    parse_parser.add_argument(
        "path",
        help="Compose file, or directory containing one",
    )
    parse_parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON",
    )

    return parser


def build_options(args: argparse.Namespace) -> ConvertOptions:
    """Build conversion options from an options file and CLI flags."""
    options = load_convert_options(args.options) if args.options else ConvertOptions()

    flags = {
        "provider": Provider(args.provider) if args.provider else None,
        "controller": ControllerType(args.controller) if args.controller else None,
        "replicas": args.replicas,
        "volume_type": VolumeType(args.volume_type) if args.volume_type else None,
        "generate_json": args.json,
        "with_kompose_annotations": args.with_annotations,
        "generate_network_policies": args.network_policies,
        "pvc_request_size": args.pvc_size,
        "namespace": args.namespace,
    }
    return replace(options, **{k: v for k, v in flags.items() if v is not None})


def cmd_convert(args: argparse.Namespace) -> int:
    """Handle convert command."""
    try:
        options = build_options(args)
        text = load_compose_file(args.path)
        result = convert_compose(text, options)
    except (FileNotFoundError, ValueError) as e:
        # ConversionError is a ValueError, as are invalid option values
        print(f"Error: {e}", file=sys.stderr)
        return 1

    # Warnings were already logged by the converter
    if args.output:
        out_dir = Path(args.output)
        out_dir.mkdir(parents=True, exist_ok=True)
        for output in result.files:
            out_file = out_dir / output.name
            out_file.write_text(output.content)
            print(f"Written: {out_file}", file=sys.stderr)
    else:
        print(join_documents(
            [f.content for f in result.files],
            options.generate_json,
        ))

    if args.verbose:
        print(f"Generated {len(result.files)} manifests", file=sys.stderr)

    return 0


def cmd_parse(args: argparse.Namespace) -> int:
    """Handle parse command."""
    try:
        document = parse_compose_document(load_compose_file(args.path))
    except (FileNotFoundError, ConversionError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.json:
        data = {"services": []}
        for svc in document.services.values():
            data["services"].append({
                "name": svc.name,
                "source_name": svc.source_name,
                "image": svc.image,
                "ports": [
                    {"published": p.published, "target": p.target}
                    for p in svc.ports
                ],
                "volumes": [
                    {"source": v.source, "target": v.target}
                    for v in svc.volumes
                ],
                "environment": svc.environment,
                "depends_on": svc.depends_on,
                "labels": svc.labels,
            })
        print(json.dumps(data, indent=2))
    else:
        print(f"Services: {len(document.services)}")
        print()

        for svc in document.services.values():
            print(f"  Service: {svc.name} ({svc.source_name})")
            if svc.image:
                print(f"    Image: {svc.image}")
            if svc.ports:
                ports_str = ", ".join(f"{p.published}:{p.target}" for p in svc.ports)
                print(f"    Ports: {ports_str}")
            if svc.volumes:
                print(f"    Volumes: {len(svc.volumes)}")
            if svc.environment:
                print(f"    Environment: {len(svc.environment)} vars")
            if svc.depends_on:
                print(f"    Depends on: {', '.join(svc.depends_on)}")
            print()

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if not args.command:
        parser.print_help()
        return 0

    commands = {
        "convert": cmd_convert,
        "parse": cmd_parse,
    }

    handler = commands.get(args.command)
    if handler:
        return handler(args)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
