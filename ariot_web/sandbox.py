"""
Decoder sandbox for ARIOT Web.

A decoder script is the body of a Python function ``decode(payload)`` stored
in the integrations table, e.g.::

    gps = payload["object"]["gps"]
    return {"lat": gps["lat"], "lon": gps["lng"], "rssi": payload["rxInfo"][0]["rssi"]}

The body is syntax-checked in this process with ``compile()`` (nothing is
executed), then run in a child interpreter that receives only the JSON payload
and hands back JSON data. Every way a decoder can go wrong, from a syntax error
to a hang, comes out of this module as a ``DecodeError``.

The child still runs as the same OS user as the server. It cannot reach the
application's database handle or the audit log, but it is not restricted from
the filesystem or the network.
"""
from __future__ import annotations

import json
import subprocess
import sys
import textwrap
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ariot_web.config import DECODER_TIMEOUT_SECONDS
from ariot_web.errors import CompileError, DecodeError

FUNCTION_NAME = "decode"
FILENAME = "<decoder>"

# Executed with ``python -I -c``. Reads {"source", "payload"} from stdin and
# writes exactly one JSON object to the real stdout.
RUNNER = r"""
import io, json, sys

def _main():
    out = sys.stdout
    req = json.loads(sys.stdin.read())
    sys.stdout = io.StringIO()
    ns = {"__name__": "decoder"}
    try:
        exec(compile(req["source"], "<decoder>", "exec"), ns)
        result = ns["decode"](req["payload"])
    except Exception as exc:
        reply = {"ok": False, "error": "%s: %s" % (type(exc).__name__, exc)}
    else:
        if not isinstance(result, dict):
            reply = {"ok": False, "error": "decoder must return a dict, got %s" % type(result).__name__}
        else:
            try:
                json.dumps(result)
                reply = {"ok": True, "result": result}
            except (TypeError, ValueError) as exc:
                reply = {"ok": False, "error": "decoder output is not JSON serializable: %s" % exc}
    out.write(json.dumps(reply))
    out.flush()

_main()
"""


@dataclass(frozen=True)
class CompiledDecoder:
    """A syntax-checked decoder, ready to be invoked on payloads."""

    source: str
    timeout: float = DECODER_TIMEOUT_SECONDS

    def __call__(self, payload: Any) -> Dict[str, Any]:
        return invoke(self, payload)


def wrap_script(body: str) -> str:
    """Turn a decoder body into the source of a ``decode(payload)`` function."""
    body = textwrap.dedent(body).strip("\n")
    return f"def {FUNCTION_NAME}(payload):\n" + textwrap.indent(body or "pass", "    ")


def compile_decoder(script: str, timeout: Optional[float] = None) -> CompiledDecoder:
    """
    Syntax-check a decoder body and return a callable transform.

    Raises:
        CompileError: If the script is not a string or is not valid Python.
    """
    if not isinstance(script, str):
        raise CompileError("decoder script must be text")
    source = wrap_script(script)
    try:
        compile(source, FILENAME, "exec")
    except (SyntaxError, ValueError) as exc:
        raise CompileError(f"{type(exc).__name__}: {exc}") from exc
    return CompiledDecoder(source=source, timeout=timeout if timeout is not None else DECODER_TIMEOUT_SECONDS)


def invoke(decoder: CompiledDecoder, payload: Any) -> Dict[str, Any]:
    """
    Run a compiled decoder on a payload in a child interpreter.

    Returns:
        The decoder's output dict.

    Raises:
        DecodeError: On any exception inside the script, a non-dict or
            non-JSON result, a crashed child, or a timeout.
    """
    try:
        request_text = json.dumps({"source": decoder.source, "payload": payload})
    except (TypeError, ValueError) as exc:
        raise DecodeError(f"payload is not JSON serializable: {exc}") from exc

    try:
        proc = subprocess.run(
            [sys.executable, "-I", "-c", RUNNER],
            input=request_text,
            capture_output=True,
            text=True,
            timeout=decoder.timeout,
        )
    except subprocess.TimeoutExpired as exc:
        raise DecodeError(f"decoder timed out after {decoder.timeout:g}s") from exc
    except OSError as exc:
        raise DecodeError(f"decoder could not be started: {exc}") from exc

    output = proc.stdout.strip()
    if not output:
        err = proc.stderr.strip().splitlines()
        detail = err[-1] if err else f"exit code {proc.returncode}"
        raise DecodeError(f"decoder produced no output ({detail})")
    try:
        reply = json.loads(output)
    except ValueError as exc:
        raise DecodeError("decoder produced unreadable output") from exc

    # A script can write to the real stdout and exit before the runner replies.
    if not isinstance(reply, dict) or "ok" not in reply:
        raise DecodeError("decoder produced unreadable output")
    if not reply["ok"]:
        raise DecodeError(str(reply.get("error") or "decoder failed"))
    result = reply.get("result")
    if not isinstance(result, dict):
        raise DecodeError("decoder produced unreadable output")
    return result
