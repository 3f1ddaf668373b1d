#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
SubKrek (async)
Fast subdomain scanner: TCP reachability checks over a candidate list, with
optional Wayback Machine harvesting of historical subdomains.

Requirements:
  pip install aiohttp aiodns rich

Usage examples:
  python subkrek.py -d example.com
  python subkrek.py -d example.com -b -c 100 -o live.txt
  python subkrek.py -d example.com -b --no-wordlist --ports 80,443,8080
"""

import os
import re
import sys
import json
import time
import signal
import socket
import logging
import argparse
import asyncio
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import (
    AsyncIterator, Awaitable, Callable, Dict, FrozenSet, Iterable, Iterator,
    List, Optional, Protocol, Sequence, Set, Tuple, Union,
)

import aiohttp
import aiodns
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import Progress, BarColumn, MofNCompleteColumn, TimeElapsedColumn, TimeRemainingColumn
from rich.table import Table

console = Console()
logger = logging.getLogger("subkrek")

__version__ = "0.2.0"

# ----------------------------- Config & Defaults ------------------------------

DEFAULT_CONCURRENCY = 50
CONNECT_TIMEOUT = 5.0
DNS_TIMEOUT = 2.0
ARCHIVE_TIMEOUT = 60.0

MAX_HOSTNAME_LENGTH = 253
MAX_LABEL_LENGTH = 63

WAYBACK_CDX_URL = "http://web.archive.org/cdx/search/cdx"
USER_AGENT = f"SubKrek/{__version__} (+subdomain scanner)"

PRESETS = {
    "fast":   [80, 443],
    "normal": [80, 443, 8080, 8443, 8000],
    "full":   [80, 443, 8080, 8443, 8000, 3000, 9000, 9443, 10443],
}

DEFAULT_PREFIXES = [
    "www", "mail", "remote", "blog", "webmail", "server", "ns1", "ns2",
    "smtp", "secure", "vpn", "m", "shop", "ftp", "mail2", "test", "portal",
    "web", "dev", "staging", "api", "corp", "admin", "mobile", "mx", "wiki",
]

HOSTNAME_CHARS_RX = re.compile(r"[a-z0-9.\-]+")
# scheme://user@HOST:port/path?query#fragment, scheme and userinfo optional
URL_HOST_RX = re.compile(r"^(?:[a-z][a-z0-9+.\-]*://)?(?:[^@/?#\s]*@)?([^:/?#\s]+)", re.I)

# ---------------------------------- Errors -------------------------------------

class SubkrekError(Exception):
    """Base class for every error subkrek raises on purpose."""


class InvalidHostname(SubkrekError, ValueError):
    def __init__(self, value: str, reason: str) -> None:
        super().__init__(f"invalid hostname {value!r}: {reason}")
        self.value = value
        self.reason = reason


class ArchiveError(SubkrekError):
    """The Wayback Machine lookup could not produce a result."""


class ArchiveUnavailable(ArchiveError):
    pass


class ArchiveParseError(ArchiveError):
    pass


class ScanAborted(SubkrekError):
    """A precondition failed before any probe was started."""

# ------------------------------ Hostnames --------------------------------------

def normalize_hostname(raw: str, apex: str) -> str:
    """
    Return the canonical form of ``raw`` as a hostname under ``apex``.

    The result is lower-case, has no trailing dot and is either the apex itself
    or ends with ``.apex``. Raises InvalidHostname otherwise.
    """
    name = raw.lower()
    if name.endswith("."):
        name = name[:-1]
    if not name:
        raise InvalidHostname(raw, "empty")
    if len(name) > MAX_HOSTNAME_LENGTH:
        raise InvalidHostname(raw, f"longer than {MAX_HOSTNAME_LENGTH} characters")
    if not HOSTNAME_CHARS_RX.fullmatch(name):
        raise InvalidHostname(raw, "disallowed characters")
    for label in name.split("."):
        if not label:
            raise InvalidHostname(raw, "empty label")
        if len(label) > MAX_LABEL_LENGTH:
            raise InvalidHostname(raw, f"label longer than {MAX_LABEL_LENGTH} characters")
        if label.startswith("-") or label.endswith("-"):
            raise InvalidHostname(raw, "label starts or ends with a hyphen")
    apex = apex.lower().rstrip(".")
    if name != apex and not name.endswith("." + apex):
        raise InvalidHostname(raw, f"not under {apex}")
    return name


def parse_apex(raw: Optional[str]) -> str:
    """Turn the user's domain argument (bare name or URL) into an apex domain."""
    value = (raw or "").strip()
    host = extract_host(value) if value else None
    if not host:
        raise InvalidHostname(raw or "", "empty domain")
    apex = normalize_hostname(host, host)
    if "." not in apex:
        raise InvalidHostname(raw or "", "apex domain needs at least two labels")
    return apex

# ------------------------------ Wayback Machine --------------------------------

def extract_host(record: str) -> Optional[str]:
    m = URL_HOST_RX.match(record.strip())
    if not m:
        return None
    return m.group(1).lower()


def _records_from_rows(rows: List) -> List[str]:
    column = 0
    if rows and isinstance(rows[0], list) and "original" in rows[0]:
        # CDX header row names the columns
        column = rows[0].index("original")
        rows = rows[1:]
    records: List[str] = []
    for row in rows:
        if isinstance(row, list):
            value = row[column] if len(row) > column else None
        elif isinstance(row, dict):
            value = row.get("original") or row.get("url")
        else:
            value = row
        if isinstance(value, str) and value:
            records.append(value)
    return records


def _records_from_lines(lines: Iterable[str]) -> List[str]:
    records: List[str] = []
    for line in lines:
        tokens = line.split()
        if not tokens:
            continue
        # Space-separated CDX lines: urlkey timestamp original ...
        records.append(next((t for t in tokens if "://" in t), tokens[0]))
    return records


def parse_archive_body(text: str) -> List[str]:
    """
    Split a CDX response body into raw URL records.

    Handles ``output=json`` (an array of rows, header first) and the plain
    text output (one record per line). Unusable rows are skipped.
    """
    stripped = text.strip()
    if not stripped:
        return []
    try:
        data = json.loads(stripped)
    except ValueError:
        data = None
    if isinstance(data, list):
        return _records_from_rows(data)
    return _records_from_lines(stripped.splitlines())


def extract_hostnames(records: Iterable[str], apex: str) -> Set[str]:
    hostnames: Set[str] = set()
    skipped = 0
    for record in records:
        host = extract_host(record)
        if host is None:
            skipped += 1
            continue
        try:
            hostnames.add(normalize_hostname(host, apex))
        except InvalidHostname as exc:
            skipped += 1
            logger.debug("Skipping archive record %r: %s", record, exc.reason)
    if skipped:
        logger.info("Skipped %d archive records without a usable hostname", skipped)
    return hostnames


class ArchiveClient:
    def __init__(self, endpoint: str = WAYBACK_CDX_URL, timeout: float = ARCHIVE_TIMEOUT,
                 proxy: Optional[str] = None):
        self.endpoint = endpoint
        self.proxy = proxy
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        self.session = aiohttp.ClientSession(timeout=self.timeout, headers={"User-Agent": USER_AGENT},
                                             trust_env=True)
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if self.session:
            await self.session.close()

    @staticmethod
    def query_params(apex: str) -> Dict[str, str]:
        return {"url": f"*.{apex}", "output": "json", "fl": "original", "collapse": "urlkey"}

    async def fetch_body(self, apex: str) -> str:
        if self.session is None:
            raise RuntimeError("ArchiveClient not started")
        try:
            async with self.session.get(self.endpoint, params=self.query_params(apex), proxy=self.proxy) as r:
                if not 200 <= r.status < 300:
                    raise ArchiveUnavailable(f"HTTP {r.status} {r.reason or 'Unknown error'}")
                raw = await r.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise ArchiveUnavailable(f"{type(exc).__name__}: {exc}") from exc
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ArchiveParseError(f"response is not UTF-8 text: {exc}") from exc

    async def fetch_hostnames(self, apex: str) -> Set[str]:
        """
        Pull archived URLs for ``*.apex`` and keep the unique hostnames under apex.
        One request, no retries.
        """
        logger.info("Searching the Wayback Machine for subdomains of %s", apex)
        body = await self.fetch_body(apex)
        records = parse_archive_body(body)
        if not records:
            logger.warning("Wayback Machine returned no records for %s", apex)
            return set()
        logger.info("Retrieved %d URLs from the Wayback Machine", len(records))
        hostnames = extract_hostnames(records, apex)
        logger.info("Found %d unique historical subdomains", len(hostnames))
        return hostnames

# ------------------------------ Candidates -------------------------------------

def load_wordlists(paths: Sequence[str] = ()) -> List[str]:
    words: Set[str] = set()
    for path in paths:
        with open(path, "r", encoding="utf-8", errors="ignore") as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith("#"):
                    words.add(line)
    if not words:
        if paths:
            logger.warning("Wordlists %s are empty, using built-in prefixes", ", ".join(paths))
        return list(DEFAULT_PREFIXES)
    return sorted(words)


def build_base_candidates(words: Iterable[str], apex: str) -> FrozenSet[str]:
    candidates: Set[str] = set()
    for word in words:
        word = word.strip().lower().rstrip(".")
        name = word if word == apex or word.endswith("." + apex) else f"{word}.{apex}"
        try:
            candidates.add(normalize_hostname(name, apex))
        except InvalidHostname as exc:
            logger.debug("Dropping candidate %r: %s", word, exc.reason)
    return frozenset(candidates)


def aggregate_candidates(base: Iterable[str], archive: Optional[Iterable[str]] = None) -> FrozenSet[str]:
    return frozenset(base).union(archive or ())

# ------------------------------ Outcomes ---------------------------------------

class Status(Enum):
    VALID = "valid"
    INVALID = "invalid"


class Reason(Enum):
    TIMEOUT = "timeout"
    REFUSED = "connection-refused"
    DNS_FAILURE = "dns-failure"
    OTHER = "other"


# Reported reason when every port failed in a different way
REASON_PRIORITY = (Reason.REFUSED, Reason.TIMEOUT, Reason.DNS_FAILURE, Reason.OTHER)


@dataclass(frozen=True)
class ValidationOutcome:
    hostname: str
    status: Status
    elapsed: float
    reason: Optional[Reason] = None
    port: Optional[int] = None

    @property
    def is_valid(self) -> bool:
        return self.status is Status.VALID

    @classmethod
    def valid(cls, hostname: str, elapsed: float, port: Optional[int] = None) -> "ValidationOutcome":
        return cls(hostname, Status.VALID, elapsed, port=port)

    @classmethod
    def invalid(cls, hostname: str, elapsed: float, reason: Reason) -> "ValidationOutcome":
        return cls(hostname, Status.INVALID, elapsed, reason=reason)


@dataclass(frozen=True)
class RunStatistics:
    total: int = 0
    valid: int = 0
    invalid: int = 0
    elapsed: float = 0.0
    interrupted: bool = False
    by_reason: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_outcomes(cls, outcomes: Iterable[ValidationOutcome], elapsed: float = 0.0,
                      interrupted: bool = False) -> "RunStatistics":
        acc = StatsAccumulator()
        for outcome in outcomes:
            acc.add(outcome)
        return acc.snapshot(elapsed, interrupted)


class StatsAccumulator:
    def __init__(self) -> None:
        self.valid = 0
        self.invalid = 0
        self.by_reason: Dict[str, int] = {}

    def add(self, outcome: ValidationOutcome) -> None:
        if outcome.is_valid:
            self.valid += 1
            return
        self.invalid += 1
        key = outcome.reason.value if outcome.reason else Reason.OTHER.value
        self.by_reason[key] = self.by_reason.get(key, 0) + 1

    def snapshot(self, elapsed: float, interrupted: bool = False) -> RunStatistics:
        return RunStatistics(
            total=self.valid + self.invalid,
            valid=self.valid,
            invalid=self.invalid,
            elapsed=elapsed,
            interrupted=interrupted,
            by_reason=dict(self.by_reason),
        )

# ------------------------------ Probing ----------------------------------------

class Resolver(Protocol):
    async def resolve(self, hostname: str) -> List[str]:
        ...


class DnsClient:
    def __init__(self, nameservers: Optional[List[str]] = None, timeout: float = DNS_TIMEOUT):
        self.resolver = aiodns.DNSResolver(nameservers=nameservers, timeout=timeout, tries=1)

    async def resolve(self, hostname: str) -> List[str]:
        for rtype in ("A", "AAAA"):
            try:
                answers = await self.resolver.query(hostname, rtype)
            except aiodns.error.DNSError as exc:
                logger.debug("%s lookup for %s failed: %s", rtype, hostname, exc)
                continue
            addresses = [getattr(a, "host") for a in answers]
            if addresses:
                return addresses
        return []


class TcpProber:
    """
    Reachability check for one hostname: resolve it once, then try a TCP
    connect on each port with its own deadline. Any accepted port is enough.
    """

    def __init__(self, ports: Sequence[int], timeout: float = CONNECT_TIMEOUT,
                 resolver: Optional[Resolver] = None):
        # Prioritize 443/80 first
        self.ports = [p for p in (443, 80) if p in ports] + [p for p in ports if p not in (80, 443)]
        self.timeout = timeout
        self.resolver = resolver

    async def __call__(self, hostname: str) -> ValidationOutcome:
        started = time.monotonic()
        target = hostname
        if self.resolver is not None:
            addresses = await self.resolver.resolve(hostname)
            if not addresses:
                return ValidationOutcome.invalid(hostname, time.monotonic() - started, Reason.DNS_FAILURE)
            target = addresses[0]

        failures: Set[Reason] = set()
        for port in self.ports:
            reason = await self.try_port(target, port)
            if reason is None:
                return ValidationOutcome.valid(hostname, time.monotonic() - started, port)
            failures.add(reason)
        reason = next((r for r in REASON_PRIORITY if r in failures), Reason.OTHER)
        return ValidationOutcome.invalid(hostname, time.monotonic() - started, reason)

    async def open(self, address: str, port: int):
        return await asyncio.open_connection(address, port)

    async def try_port(self, address: str, port: int) -> Optional[Reason]:
        try:
            _, writer = await asyncio.wait_for(self.open(address, port), self.timeout)
        except asyncio.TimeoutError:
            return Reason.TIMEOUT
        except ConnectionRefusedError:
            return Reason.REFUSED
        except socket.gaierror:
            return Reason.DNS_FAILURE
        except OSError as exc:
            logger.debug("Connect to %s:%d failed: %s", address, port, exc)
            return Reason.OTHER
        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass
        return None

# ------------------------------ Engine -----------------------------------------

Prober = Callable[[str], Awaitable[ValidationOutcome]]

_DONE = object()


class ValidationEngine:
    """
    Runs ``prober`` over a candidate set with at most ``concurrency`` probes in
    flight and yields each outcome as soon as it is known.
    """

    def __init__(self, prober: Prober, concurrency: int = DEFAULT_CONCURRENCY):
        if concurrency <= 0:
            raise ValueError("concurrency must be a positive integer")
        self.prober = prober
        self.concurrency = concurrency
        self.stats = StatsAccumulator()
        self._cancelled = False
        self._workers: List[asyncio.Task] = []
        self._started: Optional[float] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Stop admitting probes and abandon the ones in flight."""
        if self._cancelled:
            return
        self._cancelled = True
        logger.info("Scan cancelled, abandoning in-flight probes")
        for worker in self._workers:
            worker.cancel()

    def statistics(self, interrupted: Optional[bool] = None) -> RunStatistics:
        elapsed = time.monotonic() - self._started if self._started is not None else 0.0
        return self.stats.snapshot(elapsed, self._cancelled if interrupted is None else interrupted)

    async def validate(self, candidates: Iterable[str]) -> AsyncIterator[ValidationOutcome]:
        hostnames = sorted(set(candidates))
        self._started = time.monotonic()
        if not hostnames or self._cancelled:
            return

        results: asyncio.Queue = asyncio.Queue()
        pending = iter(hostnames)
        self._workers = [
            asyncio.create_task(self._worker(pending, results))
            for _ in range(min(self.concurrency, len(hostnames)))
        ]
        running = len(self._workers)
        try:
            while running:
                item = await results.get()
                if item is _DONE:
                    running -= 1
                    continue
                self.stats.add(item)
                yield item
        finally:
            for worker in self._workers:
                worker.cancel()
            await asyncio.gather(*self._workers, return_exceptions=True)

    async def _worker(self, pending: Iterator[str], results: asyncio.Queue) -> None:
        try:
            for hostname in pending:
                if self._cancelled:
                    break
                results.put_nowait(await self._probe(hostname))
        finally:
            results.put_nowait(_DONE)

    async def _probe(self, hostname: str) -> ValidationOutcome:
        started = time.monotonic()
        try:
            return await self.prober(hostname)
        except Exception as exc:
            logger.warning("Probe for %s failed unexpectedly: %r", hostname, exc)
            return ValidationOutcome.invalid(hostname, time.monotonic() - started, Reason.OTHER)

# ------------------------------ Events & Output --------------------------------

@dataclass(frozen=True)
class ScanStarted:
    apex: str
    total: int
    concurrency: int
    ports: Tuple[int, ...]


@dataclass(frozen=True)
class ProbeCompleted:
    outcome: ValidationOutcome


@dataclass(frozen=True)
class ArchiveWarning:
    reason: str


@dataclass(frozen=True)
class RunFinished:
    statistics: RunStatistics
    valid: Tuple[str, ...]


Event = Union[ScanStarted, ProbeCompleted, ArchiveWarning, RunFinished]


class Reporter(Protocol):
    def handle(self, event: Event) -> None:
        ...


class ConsoleReporter:
    def __init__(self, out: Console = console, show_invalid: bool = True):
        self.console = out
        self.show_invalid = show_invalid
        self.progress: Optional[Progress] = None
        self.task = None

    def handle(self, event: Event) -> None:
        if isinstance(event, ScanStarted):
            self._started(event)
        elif isinstance(event, ProbeCompleted):
            self._completed(event.outcome)
        elif isinstance(event, ArchiveWarning):
            self.console.print(f"[yellow][!][/] Wayback Machine lookup failed: {event.reason}")
            self.console.print("[yellow][!][/] Continuing with wordlist candidates only")
        elif isinstance(event, RunFinished):
            self._finished(event)

    def _started(self, event: ScanStarted) -> None:
        self.console.print(f"[yellow]Target Domain:[/] {event.apex}\n")
        self.console.print(f"[blue][*][/] Found {event.total} subdomains to scan")
        self.console.print(f"[blue][*][/] Using {event.concurrency} concurrent connections")
        self.console.print(f"[blue][*][/] Probing ports {', '.join(str(p) for p in event.ports)}")
        self.progress = Progress(
            "[progress.description]{task.description}",
            BarColumn(bar_width=None),
            MofNCompleteColumn(),
            "•",
            TimeElapsedColumn(),
            "•",
            TimeRemainingColumn(),
            console=self.console,
            transient=True,
        )
        self.progress.start()
        self.task = self.progress.add_task("[cyan]Scanning subdomains...", total=event.total)

    def _completed(self, outcome: ValidationOutcome) -> None:
        out = self.progress.console if self.progress else self.console
        if outcome.is_valid:
            out.print(f"[green]✓ {outcome.hostname}[/] [dim](port {outcome.port})[/]")
        elif self.show_invalid:
            out.print(f"[yellow]✗ {outcome.hostname}[/] [dim]({outcome.reason.value})[/]")
        if self.progress is not None:
            self.progress.update(self.task, advance=1)

    def _finished(self, event: RunFinished) -> None:
        if self.progress is not None:
            self.progress.stop()
            self.progress = None
        stats = event.statistics
        if event.valid:
            table = Table(title="Valid Subdomains")
            table.add_column("Subdomain", style="green", no_wrap=True)
            for hostname in event.valid:
                table.add_row(hostname)
            self.console.print(table)
        else:
            self.console.print("\n[yellow]No valid subdomains found.[/]")

        self.console.print("\n[bold bright_blue]Scan Summary:[/]")
        self.console.print(f"[blue]Time elapsed:[/] {stats.elapsed:.2f}s")
        self.console.print(f"[green]Valid subdomains:[/] {stats.valid}")
        self.console.print(f"[yellow]Invalid subdomains:[/] {stats.invalid}")
        for reason, count in sorted(stats.by_reason.items()):
            self.console.print(f"  [dim]{reason}:[/] {count}")
        self.console.print(f"[blue]Total processed:[/] {stats.total}")
        if stats.interrupted:
            self.console.print("[bold yellow]Scan interrupted, results are partial.[/]")


def write_results(path: str, hostnames: Iterable[str]) -> None:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        for hostname in sorted(hostnames):
            f.write(hostname + "\n")

# --------------------------------- Runner --------------------------------------

@dataclass(frozen=True)
class ScanConfig:
    domain: str
    concurrency: int = DEFAULT_CONCURRENCY
    timeout: float = CONNECT_TIMEOUT
    ports: Tuple[int, ...] = tuple(PRESETS["fast"])
    wayback: bool = False
    wordlists: Tuple[str, ...] = ()
    use_wordlist: bool = True
    nameservers: Tuple[str, ...] = ()
    archive_endpoint: str = WAYBACK_CDX_URL
    archive_timeout: float = ARCHIVE_TIMEOUT
    proxy: Optional[str] = None
    output: Optional[str] = None

    def validate(self) -> None:
        if self.concurrency <= 0:
            raise ScanAborted(f"Concurrency must be a positive integer, got {self.concurrency}")
        if self.timeout <= 0:
            raise ScanAborted(f"Timeout must be positive, got {self.timeout}")
        if not self.ports:
            raise ScanAborted("No ports configured")
        if not self.use_wordlist and not self.wayback:
            raise ScanAborted("Nothing to scan: --no-wordlist requires -b/--wayback")

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "ScanConfig":
        ports = args.ports or PRESETS[args.scan]
        return cls(
            domain=args.domain,
            concurrency=args.concurrency,
            timeout=args.timeout,
            ports=tuple(ports),
            wayback=args.wayback,
            wordlists=tuple(args.wordlist or ()),
            use_wordlist=not args.no_wordlist,
            nameservers=tuple(args.resolver or ()),
            archive_timeout=args.archive_timeout,
            proxy=args.proxy,
            output=args.output,
        )


@dataclass(frozen=True)
class ScanResult:
    apex: str
    statistics: RunStatistics
    valid: Tuple[str, ...]


@contextmanager
def cancel_on_interrupt(engine: ValidationEngine):
    """Route Ctrl+C to ``engine.cancel`` so partial results survive."""
    loop = asyncio.get_running_loop()
    installed = False
    try:
        loop.add_signal_handler(signal.SIGINT, engine.cancel)
        installed = True
    except (NotImplementedError, RuntimeError):
        logger.debug("SIGINT handler unavailable, Ctrl+C aborts the scan")
    try:
        yield engine
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)


async def gather_candidates(config: ScanConfig, apex: str, reporter: Reporter) -> FrozenSet[str]:
    base: FrozenSet[str] = frozenset()
    if config.use_wordlist:
        try:
            words = load_wordlists(config.wordlists)
        except OSError as exc:
            raise ScanAborted(f"Cannot read wordlist: {exc}") from exc
        base = build_base_candidates(words, apex)

    archive: Optional[Set[str]] = None
    if config.wayback:
        try:
            async with ArchiveClient(config.archive_endpoint, config.archive_timeout, proxy=config.proxy) as client:
                archive = await client.fetch_hostnames(apex)
        except ArchiveError as exc:
            if not base:
                raise ScanAborted(f"Error fetching from Wayback Machine: {exc}") from exc
            reporter.handle(ArchiveWarning(str(exc)))

    candidates = aggregate_candidates(base, archive)
    if not candidates:
        raise ScanAborted("No subdomains to scan")
    return candidates


async def run(config: ScanConfig, reporter: Reporter, prober: Optional[Prober] = None) -> ScanResult:
    config.validate()
    apex = parse_apex(config.domain)
    candidates = await gather_candidates(config, apex, reporter)

    if prober is None:
        dns = DnsClient(list(config.nameservers) or None)
        prober = TcpProber(config.ports, config.timeout, dns)
    engine = ValidationEngine(prober, config.concurrency)

    reporter.handle(ScanStarted(apex, len(candidates), config.concurrency, tuple(config.ports)))
    valid: List[str] = []
    with cancel_on_interrupt(engine):
        try:
            async for outcome in engine.validate(candidates):
                if outcome.is_valid:
                    valid.append(outcome.hostname)
                reporter.handle(ProbeCompleted(outcome))
        finally:
            result = ScanResult(apex, engine.statistics(), tuple(sorted(valid)))
            reporter.handle(RunFinished(result.statistics, result.valid))
    return result

# ----------------------------------- CLI ---------------------------------------

def parse_ports(value: str) -> List[int]:
    try:
        ports = [int(x.strip()) for x in value.split(",") if x.strip()]
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port list: {value!r}")
    if not ports or any(not 0 < p < 65536 for p in ports):
        raise argparse.ArgumentTypeError(f"ports must be between 1 and 65535: {value!r}")
    return ports


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="subkrek",
        description="SubKrek (async) – Subdomain scanner with Wayback Machine integration",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument("-d", "--domain", required=True, help="Target domain to scan (e.g., example.com)")
    parser.add_argument("-c", "--concurrency", type=int, default=DEFAULT_CONCURRENCY,
                        help="Number of concurrent connections for scanning")
    parser.add_argument("-b", "--wayback", action="store_true",
                        help="Use the Wayback Machine to discover historical subdomains")
    parser.add_argument("-o", "--output", help="Save valid subdomains to this file")
    parser.add_argument("-w", "--wordlist", action="append",
                        help="Wordlist of subdomain prefixes (repeatable; built-in list if omitted)")
    parser.add_argument("--no-wordlist", action="store_true",
                        help="Only scan hostnames found in the Wayback Machine")
    parser.add_argument("--scan", choices=list(PRESETS.keys()), default="fast",
                        help="Port preset {fast | normal | full}")
    parser.add_argument("--ports", type=parse_ports, help="Comma-separated ports to override preset (e.g., 80,443,8080)")
    parser.add_argument("-t", "--timeout", type=float, default=CONNECT_TIMEOUT,
                        help="Seconds to wait for each TCP connection")
    parser.add_argument("--resolver", action="append", help="DNS server to use (repeatable; system default if omitted)")
    parser.add_argument("--archive-timeout", type=float, default=ARCHIVE_TIMEOUT,
                        help="Seconds to wait for the Wayback Machine")
    parser.add_argument("--proxy", help="HTTP/S proxy for the Wayback Machine request (e.g., http://127.0.0.1:8080)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)
    config = ScanConfig.from_args(args)

    console.print(Panel.fit("[bold green]SubKrek[/] [yellow]async[/]\n[white]Subdomain Scanner[/]",
                            border_style="blue"))
    try:
        result = asyncio.run(run(config, ConsoleReporter(console)))
    except SubkrekError as exc:
        console.print(f"[bold red][!] {exc}[/]")
        return 1
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user.[/]")
        return 130

    if config.output:
        try:
            write_results(config.output, result.valid)
        except OSError as exc:
            console.print(f"[bold red][!] Cannot write {config.output}: {exc}[/]")
            return 1
        console.print(f"[green]✓[/] Results saved: [cyan]{config.output}[/]")
    console.print(f"\n[bold bright_blue]Scan Complete![/] ({result.statistics.elapsed:.2f}s)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
