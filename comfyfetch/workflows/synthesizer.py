"""
Installer Script Synthesizer

Generates a re-runnable installer script for a resource list:
- Custom nodes: clone into custom_nodes/, then submodules, requirements, install.py
- Models: download into the target folder with resume support
- Every step is guarded so an existing folder or file is skipped
- Failures are reported per step and never abort the rest of the script

Both dialects (bash and Windows batch) are rendered from the same per-kind
templates; a DialectSpec supplies the syntax.
"""

import logging
import posixpath
import re
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, Union
from urllib.parse import urlparse

from ..core.models import DEFAULT_TARGET_PATHS, EnrichedResource, ResourceType

logger = logging.getLogger(__name__)


CUSTOM_NODES_DIR = "custom_nodes"
UNKNOWN_NODE_DIR = "unknown_node"
SEPARATOR = "-" * 64

# (marker file, progress message, command key, failure label)
POST_CLONE_STEPS = (
    (".gitmodules", "Initializing submodules...", "submodules", "Submodule update failed for {name}."),
    ("requirements.txt", "Installing requirements.txt...", "requirements", "Pip installation failed for {name} requirements."),
    ("install.py", "Running install.py...", "install_script", "install.py failed for {name}."),
)


class ScriptDialect(str, Enum):
    """Output script flavours."""
    POSIX = "posix"
    WINDOWS_BATCH = "windows_batch"

    @classmethod
    def parse(cls, value: Union[str, "ScriptDialect"]) -> "ScriptDialect":
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        if key in ("posix", "bash", "sh", "shell"):
            return cls.POSIX
        if key in ("windows_batch", "windows", "batch", "bat", "cmd"):
            return cls.WINDOWS_BATCH
        raise ValueError(f"Unknown script dialect: {value!r} (expected 'bash' or 'bat')")

    @property
    def extension(self) -> str:
        return ".sh" if self is ScriptDialect.POSIX else ".bat"


# =============================================================================
# Quoting helpers
# =============================================================================

def _one_line(text: str) -> str:
    return re.sub(r"[\r\n]+", " ", text or "").rstrip()


def _sh_quote(text: str) -> str:
    """Escape text for use inside a bash double-quoted string."""
    text = _one_line(text)
    for char in ("\\", '"', "$", "`"):
        text = text.replace(char, "\\" + char)
    return text


def _bat_quote(text: str) -> str:
    """Escape text for use inside a batch double-quoted argument."""
    return _one_line(text).replace('"', "").replace("%", "%%")


def _bat_echo(text: str) -> str:
    """Escape text for an unquoted batch echo inside a parenthesized block."""
    text = _one_line(text).replace("^", "^^").replace("%", "%%")
    for char in ("&", "|", "<", ">", "(", ")"):
        text = text.replace(char, "^" + char)
    return text


def _ps_literal(text: str) -> str:
    """Escape text for a PowerShell single-quoted string inside a batch line."""
    return _bat_quote(text).replace("'", "''")


# =============================================================================
# Dialect descriptions
# =============================================================================

@dataclass(frozen=True)
class DialectSpec:
    """
    Syntax record for one script dialect.

    Conditional templates take ``{path}``; ``else_line``/``end_line`` close
    blocks opened by any ``if_*`` template. ``fetch_wrapper`` is set when
    the dialect reports download success/failure inside the fetch command
    itself instead of through ``if_failed``.
    """
    dialect: ScriptDialect
    comment: str
    path_sep: str
    quote: Callable[[str], str]
    echo: Callable[[str], str]
    if_dir_missing: str
    if_dir_present: str
    if_file_missing: str
    if_file_present: str
    if_failed: str
    else_line: str
    end_line: str
    mkdir: str
    cd: str
    cd_up: str
    python_cmd: str
    pip_cmd: str
    fetch_command: str
    prologue: Callable[[str], List[str]]
    epilogue: Sequence[str]
    fetch_wrapper: Optional[Callable[[str, str, Sequence[str]], str]] = None
    line_ending: str = "\n"

    def path(self, *parts: str) -> str:
        joined = posixpath.join(*[p.replace("\\", "/").strip("/") for p in parts if p])
        return joined.replace("/", self.path_sep)


def _posix_prologue(generated_on: str) -> List[str]:
    return [
        "#!/bin/bash",
        f"# ComfyUI Resource Installer - Generated on {generated_on}",
        "# NOTE: Run this script from your 'ComfyUI' root folder.",
        "# Assumes 'python' and 'pip' are in your PATH (active venv).",
        "",
        'echo "Starting ComfyUI Resource Download..."',
        "",
    ]


def _batch_prologue(generated_on: str) -> List[str]:
    return [
        "@echo off",
        f":: ComfyUI Resource Installer - Generated on {generated_on}",
        ":: NOTE: Run this from your 'ComfyUI' root folder.",
        "",
        ":: --- Environment Setup ---",
        'set "PYTHON_EXE=python"',
        "",
        'if exist "..\\python_embeded\\python.exe" (',
        "    echo [INFO] Detected ComfyUI Portable Environment.",
        '    set "PYTHON_EXE=%CD%\\..\\python_embeded\\python.exe"',
        ") else (",
        "    echo [INFO] Using system Python. Ensure it is in your PATH.",
        ")",
        "",
        "echo Starting ComfyUI Resource Download...",
        "",
    ]


def _powershell_fetch(command: str, success: str, errors: Sequence[str]) -> str:
    on_error = "; ".join(f"Write-Host '{_ps_literal(msg)}'" for msg in errors)
    return (
        'powershell -NoProfile -Command "$ProgressPreference = \'Continue\'; '
        f"try {{ {command}; Write-Host '{_ps_literal(success)}' }} "
        f"catch {{ {on_error}; Write-Host ('  Reason: ' + $_.Exception.Message) }}\""
    )


POSIX = DialectSpec(
    dialect=ScriptDialect.POSIX,
    comment="#",
    path_sep="/",
    quote=_sh_quote,
    echo=lambda text: f'echo "{_sh_quote(text)}"',
    if_dir_missing='if [ ! -d "{path}" ]; then',
    if_dir_present='if [ -d "{path}" ]; then',
    if_file_missing='if [ ! -f "{path}" ]; then',
    if_file_present='if [ -f "{path}" ]; then',
    if_failed="if [ $? -ne 0 ]; then",
    else_line="else",
    end_line="fi",
    mkdir='mkdir -p "{path}"',
    cd='cd "{path}"',
    cd_up="cd ..",
    python_cmd="python",
    pip_cmd="pip",
    fetch_command='wget -c --show-progress -O "{dest}" "{url}"',
    prologue=_posix_prologue,
    epilogue=(
        f'echo "{SEPARATOR}"',
        "# Restart ComfyUI so it picks up the new nodes and models.",
        'echo "All done! Please restart ComfyUI."',
    ),
)

WINDOWS_BATCH = DialectSpec(
    dialect=ScriptDialect.WINDOWS_BATCH,
    comment="::",
    path_sep="\\",
    quote=_bat_quote,
    echo=lambda text: f"echo {_bat_echo(text)}" if text.strip() else "echo.",
    if_dir_missing='if not exist "{path}" (',
    if_dir_present='if exist "{path}" (',
    if_file_missing='if not exist "{path}" (',
    if_file_present='if exist "{path}" (',
    if_failed="if errorlevel 1 (",
    else_line=") else (",
    end_line=")",
    mkdir='if not exist "{path}" mkdir "{path}"',
    cd='cd "{path}"',
    cd_up="cd ..",
    python_cmd='"%PYTHON_EXE%"',
    pip_cmd='"%PYTHON_EXE%" -m pip',
    fetch_command="Invoke-WebRequest -Uri '{url}' -OutFile '{dest}' -ErrorAction Stop | Out-Null",
    fetch_wrapper=_powershell_fetch,
    prologue=_batch_prologue,
    epilogue=(
        f"echo {SEPARATOR}",
        ":: Restart ComfyUI so it picks up the new nodes and models.",
        "echo All done! Please restart ComfyUI.",
        "pause",
    ),
    line_ending="\r\n",
)

DIALECTS = {
    ScriptDialect.POSIX: POSIX,
    ScriptDialect.WINDOWS_BATCH: WINDOWS_BATCH,
}


# =============================================================================
# Repository folder names
# =============================================================================

_SSH_REMOTE = re.compile(r"^[\w.\-]+@(?P<host>[\w.\-]+):(?P<path>.+)$")
_SAFE_DIR = re.compile(r"^[\w.\-]+$")


def repo_dir_name(url: str) -> str:
    """
    Derive the folder ``git clone`` creates for a repository URL.

    Handles ``git@github.com:owner/repo(.git)``, ``https://github.com/owner/repo``
    (extra path like ``/tree/main`` is ignored) and falls back to the last
    path segment. A trailing ``.git`` is always stripped; anything unusable
    becomes ``unknown_node``.
    """
    text = (url or "").strip().rstrip("/")
    if not text:
        return UNKNOWN_NODE_DIR

    ssh = _SSH_REMOTE.match(text)
    if ssh:
        host, path = ssh.group("host"), ssh.group("path")
    else:
        parsed = urlparse(text)
        if parsed.scheme and parsed.netloc:
            host, path = parsed.netloc, parsed.path
        else:
            host, path = "", text

    segments = [s for s in re.split(r"[/\\]", path) if s]
    if not segments:
        return UNKNOWN_NODE_DIR

    if "github.com" in host.lower() and len(segments) >= 2:
        name = segments[1]
    else:
        name = segments[-1]

    if name.lower().endswith(".git"):
        name = name[:-4]

    if not name or not _SAFE_DIR.match(name):
        return UNKNOWN_NODE_DIR
    return name


# =============================================================================
# Script writer
# =============================================================================

class _ScriptWriter:
    """Accumulates indented lines for one dialect."""

    INDENT = "  "

    def __init__(self, spec: DialectSpec):
        self.spec = spec
        self.lines: List[str] = []
        self.depth = 0

    def line(self, text: str = "") -> None:
        self.lines.append(f"{self.INDENT * self.depth}{text}" if text else "")

    def echo(self, text: str) -> None:
        self.line(self.spec.echo(text))

    def comment(self, text: str) -> None:
        self.line(f"{self.spec.comment} {_one_line(text)}")

    @contextmanager
    def block(self, header: str):
        self.line(header)
        self.depth += 1
        yield
        self.depth -= 1
        self.line(self.spec.end_line)

    def otherwise(self) -> None:
        self.depth -= 1
        self.line(self.spec.else_line)
        self.depth += 1


class InstallerScriptSynthesizer:
    """Renders resource lists into installer scripts."""

    def __init__(self, dialect: Union[ScriptDialect, str] = ScriptDialect.POSIX):
        self.dialect = ScriptDialect.parse(dialect)
        self.spec = DIALECTS[self.dialect]

    def synthesize(
        self,
        resources: Iterable[EnrichedResource],
        generated_on: Optional[date] = None,
    ) -> str:
        """
        Render the script text.

        Output depends only on the resources, their order and the header
        date. Resources without a download URL are skipped.
        """
        spec = self.spec
        stamp = (generated_on or date.today()).isoformat()
        writer = _ScriptWriter(spec)
        writer.lines.extend(spec.prologue(stamp))

        emitted = 0
        for resource in resources:
            if not (resource.download_url or "").strip():
                logger.debug(f"[synthesizer] Skipping {resource.raw_name!r}: no download URL")
                continue
            writer.comment(SEPARATOR)
            writer.comment(f"[{resource.type.value}] {resource.name or resource.raw_name}")
            if resource.type is ResourceType.CUSTOM_NODE:
                self._emit_custom_node(writer, resource)
            else:
                self._emit_model(writer, resource)
            writer.line()
            emitted += 1

        writer.lines.extend(spec.epilogue)
        logger.info(f"[synthesizer] Rendered {emitted} resources as {self.dialect.value}")
        return "\n".join(writer.lines) + "\n"

    def _emit_custom_node(self, w: _ScriptWriter, resource: EnrichedResource) -> None:
        spec = self.spec
        name = resource.name or resource.raw_name
        url = resource.download_url.strip()
        repo_dir = repo_dir_name(url)
        commands = {
            "submodules": "git submodule update --init --recursive",
            "requirements": f"{spec.pip_cmd} install -r requirements.txt",
            "install_script": f"{spec.python_cmd} install.py",
        }

        w.echo(f"Processing Custom Node: {name}...")
        w.line(spec.mkdir.format(path=CUSTOM_NODES_DIR))
        w.line(spec.cd.format(path=CUSTOM_NODES_DIR))

        with w.block(spec.if_dir_missing.format(path=repo_dir)):
            w.echo(f"  Cloning repo '{url}'...")
            w.line(f'git clone "{spec.quote(url)}" "{repo_dir}"')
            with w.block(spec.if_failed):
                w.echo(f"  ERROR: Git clone failed for {name}. Check URL and internet connection.")
                w.otherwise()
                w.echo("  Clone successful.")
            w.otherwise()
            w.echo(f"  Folder '{repo_dir}' already exists. Skipping clone.")

        with w.block(spec.if_dir_present.format(path=repo_dir)):
            w.line(spec.cd.format(path=repo_dir))
            for marker, message, command_key, failure in POST_CLONE_STEPS:
                with w.block(spec.if_file_present.format(path=marker)):
                    w.echo(f"  {message}")
                    w.line(commands[command_key])
                    with w.block(spec.if_failed):
                        w.echo(f"  WARNING: {failure.format(name=name)}")
            w.line(spec.cd_up)
        w.line(spec.cd_up)

    def _emit_model(self, w: _ScriptWriter, resource: EnrichedResource) -> None:
        spec = self.spec
        name = resource.name or resource.raw_name
        url = resource.download_url.strip()
        target = (resource.target_path or "").strip() or DEFAULT_TARGET_PATHS[resource.type]

        target_path = spec.path(target)
        dest = spec.path(target, resource.raw_name)
        dest_dir = spec.path(posixpath.dirname(posixpath.join(
            target.replace("\\", "/"), resource.raw_name.replace("\\", "/")
        )))
        quoted_dest = spec.quote(dest)
        success = f"  Download successful for {name}."
        errors = [
            f"  ERROR: Download failed for {name} from {url}",
            "  Please check the URL and your network connection, or try downloading manually.",
        ]

        w.echo(f"Processing Model: {name}...")
        w.line(spec.mkdir.format(path=spec.quote(dest_dir)))

        with w.block(spec.if_file_missing.format(path=quoted_dest)):
            w.echo(f"  Downloading '{url}' to '{dest}'...")
            if spec.fetch_wrapper is not None:
                command = spec.fetch_command.format(url=_ps_literal(url), dest=_ps_literal(dest))
                w.line(spec.fetch_wrapper(command, success, errors))
            else:
                w.line(spec.fetch_command.format(url=spec.quote(url), dest=quoted_dest))
                with w.block(spec.if_failed):
                    for message in errors:
                        w.echo(message)
                    w.otherwise()
                    w.echo(success)
            w.otherwise()
            w.echo(f"  File '{resource.raw_name}' already exists in '{target_path}'. Skipping download.")


def synthesize(
    resources: Iterable[EnrichedResource],
    dialect: Union[ScriptDialect, str] = ScriptDialect.POSIX,
    generated_on: Optional[date] = None,
) -> str:
    """Render an installer script for the given resources and dialect."""
    return InstallerScriptSynthesizer(dialect).synthesize(resources, generated_on=generated_on)


def script_filename(
    dialect: Union[ScriptDialect, str],
    timestamp: Optional[datetime] = None,
) -> str:
    """Default file name for a generated script, e.g. comfy_install_1700000000000.sh."""
    moment = timestamp or datetime.now()
    return f"comfy_install_{int(moment.timestamp() * 1000)}{ScriptDialect.parse(dialect).extension}"


def write_script(path: Path, text: str, dialect: Union[ScriptDialect, str]) -> Path:
    """Write script text with the dialect's line endings; bash scripts are made executable."""
    spec = DIALECTS[ScriptDialect.parse(dialect)]
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8", newline=spec.line_ending) as f:
        f.write(text)
    if spec.dialect is ScriptDialect.POSIX:
        path.chmod(path.stat().st_mode | 0o111)
    return path
