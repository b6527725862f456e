"""
Log inspection tools.

Everything here is plain Python over files inside the workspace: no grep,
no tail. Lines are matched against a handful of common shapes:

    2024-05-01T10:00:00 [ERROR] something broke
    {"level": "error", "msg": "..."}            (JSON lines)
"""

import json
import re
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Pattern

from toolgate.gateway.errors import ArgumentError
from toolgate.gateway.schema import boolean, enum, integer, obj, string
from toolgate.tools.base import ToolGroup
from toolgate.tools.filesystem import walk_glob

LEVELS = ["ERROR", "WARN", "INFO", "DEBUG", "TRACE"]

TIMESTAMP_RE = re.compile(r"(\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}:\d{2})")
LEVEL_RE = re.compile(r"\[(ERROR|WARN|INFO|DEBUG|TRACE)\]", re.IGNORECASE)
ERROR_RE = re.compile(r"\b(ERROR|FATAL|CRITICAL)\b", re.IGNORECASE)
WARNING_RE = re.compile(r"\b(WARN|WARNING)\b", re.IGNORECASE)
EXCEPTION_RE = re.compile(r"Exception|Error:")
EXCEPTION_TYPE_RE = re.compile(r"(\w+Exception|\w+Error)")
ERROR_PATTERN_RE = re.compile(r"(\w*(?:Error|Exception)):")
# "    at foo (x.js:1)" for JS, "  File "x.py", line 1" / "    foo()" for Python
TRACE_LINE_RE = re.compile(r"^\s+(at\s|File\s|\w+[.(])")

FIND_IGNORE = ["node_modules/**", ".git/**", "dist/**", "build/**"]
AGGREGATE_IGNORE = ["node_modules/**", ".git/**"]


def compile_pattern(field: str, pattern: str) -> Pattern:
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error as e:
        raise ArgumentError(field, f"invalid regular expression: {e}", expected="regex")


def parse_timestamp(line: str) -> Optional[datetime]:
    match = TIMESTAMP_RE.search(line)
    if not match:
        return None
    try:
        return datetime.fromisoformat(match.group(1).replace(" ", "T"))
    except ValueError:
        # shaped like a timestamp but not a real date, e.g. month 13
        return None


def parse_line(line: str) -> Dict[str, Any]:
    """Structured view of one log line: JSON object or timestamp/level/message."""
    if line.lstrip().startswith("{"):
        try:
            parsed = json.loads(line)
        except (ValueError, RecursionError):
            return {"raw": line}
        if isinstance(parsed, dict):
            return parsed
        return {"raw": line}

    timestamp = TIMESTAMP_RE.match(line)
    level = LEVEL_RE.search(line)
    return {
        "timestamp": timestamp.group(1) if timestamp else None,
        "level": level.group(1).upper() if level else None,
        "message": line,
    }


def read_lines(path: Path) -> List[str]:
    return path.read_text(encoding="utf-8", errors="replace").splitlines()


def analyze_lines(lines: List[str], extract_stack_traces: bool = True) -> Dict[str, Any]:
    """Errors, warnings, exceptions, stack traces and error-type counts for ``lines``."""
    errors, warnings, exceptions, traces = [], [], [], []
    patterns: Counter = Counter()
    trace: List[str] = []
    trace_start = 0

    for number, line in enumerate(lines, start=1):
        if trace:
            if TRACE_LINE_RE.match(line):
                trace.append(line)
                continue
            traces.append({"startLine": trace_start, "trace": "\n".join(trace)})
            trace = []

        if ERROR_RE.search(line):
            errors.append({"line": number, "content": line.strip()})
            match = ERROR_PATTERN_RE.search(line)
            if match:
                patterns[match.group(1)] += 1
        if WARNING_RE.search(line):
            warnings.append({"line": number, "content": line.strip()})
        if EXCEPTION_RE.search(line):
            kind = EXCEPTION_TYPE_RE.search(line)
            exceptions.append({
                "line": number,
                "type": kind.group(1) if kind else "Unknown",
                "content": line.strip(),
            })
            if extract_stack_traces:
                trace = [line]
                trace_start = number

    if trace:
        traces.append({"startLine": trace_start, "trace": "\n".join(trace)})

    return {
        "totalLines": len(lines),
        "errors": errors,
        "warnings": warnings,
        "exceptions": exceptions,
        "stackTraces": traces,
        "errorPatterns": dict(patterns),
        "topErrorPatterns": [{"error": e, "count": c} for e, c in patterns.most_common(10)],
        "summary": {
            "totalErrors": len(errors),
            "totalWarnings": len(warnings),
            "totalExceptions": len(exceptions),
            "totalStackTraces": len(traces),
        },
    }


class LogTools(ToolGroup):
    """read_log_file, find_log_files, search_logs, analyze_error_logs, aggregate_logs."""

    name = "logs"

    def tools(self):
        return [
            self.tool(
                "read_log_file",
                "Read and parse log files with optional filtering and tail support",
                {
                    "logPath": string("Path to log file (relative to workspace)", required=True),
                    "lines": integer("Number of lines to read from end (tail -n)", default=100),
                    "filter": string("Filter logs by string/regex pattern"),
                    "level": enum(LEVELS, "Filter by log level"),
                },
                self.read_log_file,
            ),
            self.tool(
                "find_log_files",
                "Find all log files in the workspace",
                {
                    "pattern": string("Glob pattern for log files", default="**/*.log"),
                    "includeNodeModules": boolean("Include logs in node_modules", default=False),
                },
                self.find_log_files,
            ),
            self.tool(
                "search_logs",
                "Search through all log files in workspace for specific patterns with context",
                {
                    "pattern": string("Search pattern (supports regex)", required=True),
                    "logDir": string("Directory to search for logs (default: workspace root)", default="."),
                    "filePattern": string("File pattern for log files (default: *.log)", default="*.log"),
                    "contextLines": integer("Number of context lines before/after match", default=2),
                },
                self.search_logs,
            ),
            self.tool(
                "analyze_error_logs",
                "Analyze log files for errors, exceptions, and common issues",
                {
                    "logPath": string("Path to log file to analyze", required=True),
                    "extractStackTraces": boolean("Extract and parse stack traces", default=True),
                },
                self.analyze_error_logs,
            ),
            self.tool(
                "aggregate_logs",
                "Aggregate and analyze multiple log files together",
                {
                    "logPattern": string("Glob pattern to match log files", default="**/*.log"),
                    "timeRange": obj(
                        {
                            "start": string("Start time (ISO 8601)"),
                            "end": string("End time (ISO 8601)"),
                        },
                        "Only count entries inside this time range",
                    ),
                    "groupBy": enum(
                        ["level", "file", "hour", "day"],
                        "How to group log entries",
                        default="level",
                    ),
                },
                self.aggregate_logs,
            ),
        ]

    # ── Handlers ──────────────────────────────────────────────────────────

    def read_log_file(self, args: Dict[str, Any]) -> Dict[str, Any]:
        all_lines = read_lines(self.resolve(args["logPath"]))
        count = args["lines"]
        lines = all_lines[-count:] if count > 0 else all_lines

        if args.get("level"):
            level = args["level"].lower()
            lines = [line for line in lines if level in line.lower()]
        if args.get("filter"):
            regex = compile_pattern("filter", args["filter"])
            lines = [line for line in lines if regex.search(line)]

        return {
            "success": True,
            "logPath": args["logPath"],
            "totalLines": len(all_lines),
            "returnedLines": len(lines),
            "logs": [parse_line(line) for line in lines],
        }

    def find_log_files(self, args: Dict[str, Any]) -> Dict[str, Any]:
        ignore = [".git/**"] if args["includeNodeModules"] else FIND_IGNORE
        stats = [
            (relative, (self.workspace / relative).stat())
            for relative in walk_glob(self.workspace, args["pattern"], ignore)
        ]
        stats.sort(key=lambda item: item[1].st_mtime, reverse=True)
        found = [
            {
                "path": relative,
                "size": info.st_size,
                "modified": datetime.fromtimestamp(info.st_mtime).isoformat(),
                "sizeHuman": f"{info.st_size / 1024:.2f} KB",
            }
            for relative, info in stats
        ]
        return {"success": True, "pattern": args["pattern"], "found": len(found), "logFiles": found}

    def search_logs(self, args: Dict[str, Any]) -> Dict[str, Any]:
        regex = compile_pattern("pattern", args["pattern"])
        context = max(args["contextLines"], 0)
        root = self.resolve(args["logDir"])
        pattern = args["filePattern"]
        if "/" not in pattern and not pattern.startswith("**"):
            pattern = f"**/{pattern}"

        matches = []
        for relative in walk_glob(root, pattern, AGGREGATE_IGNORE):
            path = root / relative
            lines = read_lines(path)
            for index, line in enumerate(lines):
                if not regex.search(line):
                    continue
                lo, hi = max(0, index - context), min(len(lines), index + context + 1)
                matches.append({
                    "file": self.relative(path),
                    "lineNumber": index + 1,
                    "context": [
                        {"line": n + 1, "content": lines[n], "isMatch": n == index}
                        for n in range(lo, hi)
                    ],
                })
        return {
            "success": True,
            "pattern": args["pattern"],
            "matchCount": len(matches),
            "matches": matches,
        }

    def analyze_error_logs(self, args: Dict[str, Any]) -> Dict[str, Any]:
        lines = read_lines(self.resolve(args["logPath"]))
        return {
            "success": True,
            "logPath": args["logPath"],
            "analysis": analyze_lines(lines, args["extractStackTraces"]),
        }

    def aggregate_logs(self, args: Dict[str, Any]) -> Dict[str, Any]:
        window = args.get("timeRange") or {}
        start = _parse_bound("timeRange.start", window.get("start"))
        end = _parse_bound("timeRange.end", window.get("end"))
        group_by = args["groupBy"]

        files = walk_glob(self.workspace, args["logPattern"], AGGREGATE_IGNORE)
        groups: Counter = Counter()
        by_level: Counter = Counter()
        by_file: Dict[str, int] = {}
        earliest = latest = None
        total = 0

        for relative in files:
            counted = 0
            for line in read_lines(self.workspace / relative):
                if not line.strip():
                    continue
                timestamp = parse_timestamp(line)
                if (start or end) and timestamp is None:
                    continue
                if start and timestamp < start or end and timestamp > end:
                    continue
                counted += 1
                level_match = LEVEL_RE.search(line)
                level = level_match.group(1).upper() if level_match else None
                if level:
                    by_level[level] += 1
                if timestamp is not None:
                    earliest = timestamp if earliest is None else min(earliest, timestamp)
                    latest = timestamp if latest is None else max(latest, timestamp)

                if group_by == "level":
                    key = level
                elif group_by == "file":
                    key = relative
                elif group_by == "hour":
                    key = timestamp.strftime("%Y-%m-%dT%H") if timestamp else None
                else:
                    key = timestamp.strftime("%Y-%m-%d") if timestamp else None
                if key is not None:
                    groups[key] += 1
            by_file[relative] = counted
            total += counted

        return {
            "success": True,
            "pattern": args["logPattern"],
            "aggregated": {
                "files": len(files),
                "totalEntries": total,
                "groupBy": group_by,
                "groups": dict(sorted(groups.items())),
                "byLevel": dict(by_level),
                "byFile": by_file,
                "timeRange": {
                    "earliest": earliest.isoformat() if earliest else None,
                    "latest": latest.isoformat() if latest else None,
                },
            },
        }


def _parse_bound(field: str, value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise ArgumentError(field, "not an ISO 8601 timestamp", expected="ISO 8601", actual=value)
    # Log timestamps carry no zone; compare wall-clock times.
    return parsed.replace(tzinfo=None)
