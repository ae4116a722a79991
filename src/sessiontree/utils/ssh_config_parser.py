# sessiontree/utils/ssh_config_parser.py

import glob
import os
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple

from .logger import get_logger

_WILDCARD_CHARS = ("*", "?", "!")


@dataclass(slots=True)
class SSHConfigHost:
    """One concrete ``Host`` alias of an OpenSSH config file."""

    alias: str
    hostname: Optional[str] = None
    user: Optional[str] = None
    port: Optional[int] = None
    identity_file: Optional[str] = None
    proxy_jump: Optional[str] = None

    @property
    def target(self) -> str:
        """Host to connect to: ``HostName`` when given, else the alias."""
        return self.hostname or self.alias


class SSHConfigParser:
    """Reads host aliases from OpenSSH-style config files.

    ``Include`` directives are followed (each file at most once); wildcard
    and negated patterns are skipped, and parsing of a file stops at the
    first ``Match`` block.
    """

    def __init__(self) -> None:
        self.logger = get_logger("sessiontree.utils.sshconfig")
        self._entries: List[SSHConfigHost] = []
        self._seen_aliases: Set[str] = set()
        self._visited: Set[Path] = set()

    def parse(self, config_path: Path) -> List[SSHConfigHost]:
        """Parse ``config_path`` and return its hosts in file order."""
        self._entries = []
        self._seen_aliases.clear()
        self._visited.clear()
        self._parse_file(Path(config_path).expanduser())
        return list(self._entries)

    def _resolve_config_path(self, path: Path) -> Optional[Path]:
        resolved = path.resolve()
        if resolved in self._visited:
            return None
        if not resolved.is_file():
            self.logger.warning(f"SSH config path is not a file: {path}")
            return None
        return resolved

    def _parse_file(self, path: Path) -> None:
        resolved = self._resolve_config_path(path)
        if resolved is None:
            return
        self._visited.add(resolved)

        patterns: List[str] = []
        options: Dict[str, str] = {}
        with resolved.open("r", encoding="utf-8", errors="ignore") as handle:
            for raw_line in handle:
                line = raw_line.strip()
                if not line or line.startswith("#"):
                    continue
                keyword, values = self._split_directive(line)
                if not keyword:
                    continue

                if keyword == "match":
                    break
                if keyword == "host":
                    self._flush_hosts(patterns, options)
                    patterns, options = values, {}
                elif keyword == "include":
                    self._flush_hosts(patterns, options)
                    patterns, options = [], {}
                    self._handle_include(values, resolved.parent)
                elif patterns and values:
                    # First value wins, as in ssh itself.
                    options.setdefault(keyword, " ".join(values))

        self._flush_hosts(patterns, options)

    def _handle_include(self, patterns: Iterable[str], base_dir: Path) -> None:
        for pattern in patterns:
            expanded = self._expand_path(pattern, base_dir)
            for match in sorted(glob.glob(str(expanded))):
                self._parse_file(Path(match))

    def _flush_hosts(self, patterns: List[str], options: Dict[str, str]) -> None:
        for alias in patterns:
            if not alias or any(ch in alias for ch in _WILDCARD_CHARS):
                continue
            if alias in self._seen_aliases:
                continue

            entry = SSHConfigHost(
                alias=alias,
                hostname=options.get("hostname"),
                user=options.get("user"),
                identity_file=options.get("identityfile"),
                proxy_jump=options.get("proxyjump"),
            )
            if port := options.get("port"):
                try:
                    entry.port = int(port)
                except ValueError:
                    self.logger.debug(f"Invalid port '{port}' for host '{alias}' in ssh config.")

            self._seen_aliases.add(alias)
            self._entries.append(entry)

    @staticmethod
    def _split_directive(line: str) -> Tuple[str, List[str]]:
        # "Keyword=value" is as valid as "Keyword value".
        if "=" in line.split(None, 1)[0]:
            line = line.replace("=", " ", 1)
        lexer = shlex.shlex(line, posix=True)
        lexer.commenters = "#"
        lexer.whitespace_split = True
        try:
            tokens = list(lexer)
        except ValueError:
            return "", []
        if not tokens:
            return "", []
        return tokens[0].lower(), tokens[1:]

    @staticmethod
    def _expand_path(path_str: str, base_dir: Path) -> Path:
        expanded = Path(os.path.expanduser(path_str))
        if not expanded.is_absolute():
            expanded = base_dir / expanded
        return expanded
