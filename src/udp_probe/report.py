#!/usr/bin/env python3
"""
Offline log summary

Reads a log written by the recorder and reports loss, reordering and
latency for the session it contains.
"""

import re
import logging
from pathlib import Path
from typing import Any, Dict, Iterable

from .stats import SessionStats

logger = logging.getLogger(__name__)

OBSERVATION_RE = re.compile(
    r'^ooo=(?P<ooo>[yn]), pck_nbr=\d+, seq_sent=\d+, seq_recv=\d+, '
    r'.*time_ns=(?P<latency_ns>-?\d+)ns, remote='
)
LOSS_RE = re.compile(r'^lost=yes, seq_recv=(?P<seq>\d+)$')


def summarize_lines(lines: Iterable[str]) -> Dict[str, Any]:
    """
    Summarize recorder log lines.

    Returns:
        SessionStats.summary() plus 'unparsed', the number of skipped lines
    """
    stats = SessionStats(window=None)  # a finished log is bounded
    unparsed = 0

    for line in lines:
        line = line.rstrip('\n')
        if not line:
            continue
        match = OBSERVATION_RE.match(line)
        if match:
            stats.add_observation(int(match.group('latency_ns')), match.group('ooo') == 'y')
            continue
        if LOSS_RE.match(line):
            stats.add_loss()
            continue
        unparsed += 1
        logger.debug(f"Skipping unrecognized line: {line!r}")

    result = stats.summary()
    result['unparsed'] = unparsed
    return result


def summarize_file(path) -> Dict[str, Any]:
    with open(Path(path), 'r') as f:
        return summarize_lines(f)


def format_summary(summary: Dict[str, Any]) -> str:
    lines = [
        f"Received:      {summary['received']}",
        f"Lost:          {summary['lost']} ({summary['loss_percent']:.2f}%)",
        f"Out of order:  {summary['out_of_order']}",
    ]
    if summary['latency_mean_ms'] is not None:
        lines.extend([
            f"Latency min:   {summary['latency_min_ms']:.3f} ms",
            f"Latency mean:  {summary['latency_mean_ms']:.3f} ms",
            f"Latency p50:   {summary['latency_p50_ms']:.3f} ms",
            f"Latency p99:   {summary['latency_p99_ms']:.3f} ms",
            f"Latency max:   {summary['latency_max_ms']:.3f} ms",
        ])
    if summary.get('unparsed'):
        lines.append(f"Unparsed lines: {summary['unparsed']}")
    return "\n".join(lines)
