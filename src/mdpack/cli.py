"""mdpack CLI.

This is the stable CLI entrypoint (console-script: ``mdpack``).

UX policy:
  - ``pack`` exits 0 even when files were skipped; skips with a cause worth
    knowing about (unreadable, odd path) are printed as warnings on stderr.
  - ``revert`` is all-or-nothing: a malformed archive writes no file.
  - Errors map to stable exit codes (see mdpack.errors).
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from mdpack.config import DEFAULT_ARCHIVE_NAME, ConfigError, load_pack_config
from mdpack.errors import EXIT_USAGE, MdpackError


def _pkg_version() -> str:
    try:
        from importlib.metadata import PackageNotFoundError, version

        try:
            return version("mdpack")
        except PackageNotFoundError:
            # running from a source checkout without metadata
            return "0+unknown"
    except Exception:
        return "0+unknown"


def _add_common_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--debug", action="store_true", help="Show stack traces on errors")


def _add_config_arg(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--config",
        default=None,
        help="Pack config JSON (mdpack.config.v1). Use '@file.json' to load from file, or pass JSON inline.",
    )


def _warn(msg: str) -> None:
    print(f"[mdpack] WARNING {msg}", file=sys.stderr)


def _cmd_pack(
    path: Path,
    *,
    output: Path | None,
    config_arg: str | None,
    report: bool,
    report_json: Path | None,
    quiet: bool,
) -> int:
    from mdpack.pack_report import build_pack_report, render_pack_report_text
    from mdpack.packer import pack

    cfg = load_pack_config(config_arg)
    res = pack(path, config=cfg, output=output, verbose=not quiet)
    for w in res.warnings:
        _warn(w)
    if res.files_ok == 0:
        _warn("no eligible files found")

    if report or report_json is not None:
        rep = build_pack_report(res)
        if report:
            print(render_pack_report_text(rep), end="")
        if report_json is not None:
            report_json.write_text(json.dumps(rep, indent=2) + "\n", encoding="utf-8")
            if not quiet:
                print(f"pack: report -> {report_json}")
    return 0


def _cmd_revert(archive: Path, *, target: Path | None, config_arg: str | None, quiet: bool) -> int:
    from mdpack.packer import revert

    cfg = load_pack_config(config_arg)
    revert(archive, target_root=target, config=cfg, verbose=not quiet)
    return 0


def _cmd_verify(archive: Path, *, against: Path | None, config_arg: str | None, as_json: bool) -> int:
    from mdpack.verify import verify_archive

    cfg = load_pack_config(config_arg)
    rep = verify_archive(archive, against=against, config=cfg)
    if as_json:
        print(
            json.dumps(
                {
                    "schema": "mdpack.verify.v1",
                    "ok": True,
                    "target": str(archive),
                    "entries": rep.entries,
                    "total_bytes": rep.total_bytes,
                    "encodings": dict(sorted(rep.encodings.items())),
                    "compared": rep.compared,
                    "version": _pkg_version(),
                },
                ensure_ascii=False,
                separators=(",", ":"),
            )
        )
    else:
        print(f"verify: entries={rep.entries} total_bytes={rep.total_bytes} compared={rep.compared}")
        print("OK")
    return 0


def _print_verify_json_error(target: Path, *, err_type: str, message: str, exit_code: int) -> None:
    print(
        json.dumps(
            {
                "schema": "mdpack.verify.v1",
                "ok": False,
                "target": str(target),
                "error": {"type": err_type, "message": message, "exit_code": exit_code},
                "version": _pkg_version(),
            },
            ensure_ascii=False,
            separators=(",", ":"),
        ),
        file=sys.stderr,
    )


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="mdpack", description="Pack a directory tree into one Markdown file, and back"
    )
    p.add_argument("--version", action="version", version=f"mdpack {_pkg_version()}")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_pack = sub.add_parser("pack", help="Pack eligible files under PATH into one archive")
    p_pack.add_argument("path", nargs="?", type=Path, default=Path("."))
    p_pack.add_argument(
        "--output",
        type=Path,
        default=None,
        help=f"Archive file (default: PATH/{DEFAULT_ARCHIVE_NAME}, or archive_name from --config)",
    )
    _add_config_arg(p_pack)
    p_pack.add_argument("--report", action="store_true", help="Print a mini-report after packing")
    p_pack.add_argument("--report-json", type=Path, default=None, help="Write the report as JSON to this file")
    p_pack.add_argument("--quiet", action="store_true", help="No progress output (warnings still go to stderr)")
    _add_common_args(p_pack)

    p_rev = sub.add_parser("revert", help="Restore files from an archive")
    p_rev.add_argument("archive", nargs="?", type=Path, default=Path(DEFAULT_ARCHIVE_NAME))
    p_rev.add_argument(
        "--target",
        type=Path,
        default=None,
        help="Restore root (default: the directory containing the archive)",
    )
    _add_config_arg(p_rev)
    p_rev.add_argument("--quiet", action="store_true", help="No progress output")
    _add_common_args(p_rev)

    p_ver = sub.add_parser("verify", help="Check that an archive parses and decodes (writes nothing)")
    p_ver.add_argument("archive", type=Path)
    p_ver.add_argument(
        "--against", type=Path, default=None, help="Also compare every entry with the files under this directory"
    )
    _add_config_arg(p_ver)
    p_ver.add_argument("--json", action="store_true", help="Machine-readable output")
    _add_common_args(p_ver)

    return p


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    p = build_parser()
    ns = p.parse_args(argv)
    as_json = bool(getattr(ns, "json", False))

    try:
        if ns.cmd == "pack":
            return _cmd_pack(
                ns.path,
                output=ns.output,
                config_arg=ns.config,
                report=bool(ns.report),
                report_json=ns.report_json,
                quiet=bool(ns.quiet),
            )
        if ns.cmd == "revert":
            return _cmd_revert(ns.archive, target=ns.target, config_arg=ns.config, quiet=bool(ns.quiet))
        if ns.cmd == "verify":
            return _cmd_verify(ns.archive, against=ns.against, config_arg=ns.config, as_json=as_json)
        raise AssertionError("unreachable")

    except SystemExit:
        raise
    except ConfigError as e:
        # Treat as usage/config error.
        if getattr(ns, "debug", False):
            raise
        if as_json:
            _print_verify_json_error(ns.archive, err_type="ConfigError", message=str(e), exit_code=EXIT_USAGE)
        else:
            print(f"[mdpack] {e}", file=sys.stderr)
        return EXIT_USAGE
    except MdpackError as e:
        if getattr(ns, "debug", False):
            raise
        code = int(getattr(e, "exit_code", 10) or 10)
        if as_json:
            _print_verify_json_error(ns.archive, err_type=type(e).__name__, message=str(e), exit_code=code)
        else:
            print(f"[mdpack] {e}", file=sys.stderr)
        return code
    except Exception as e:
        if getattr(ns, "debug", False):
            raise
        print(f"[mdpack] error: {e}", file=sys.stderr)
        return 10


if __name__ == "__main__":
    raise SystemExit(main())
