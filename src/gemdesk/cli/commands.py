# src/gemdesk/cli/commands.py

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable, Coroutine, Iterable
from datetime import datetime
from enum import StrEnum
from typing import Any, TypeVar, cast

from ..clients.client_models import PROJECT_TYPE_LABELS, ProjectType, SocialMediaCommitment, TransactionType
from ..clients.client_service import ClientDraft
from ..core.errors import GemDeskError, ValidationError, parse_enum
from ..core.state import AppState
from ..gems.gem_models import resolve_drive_links
from ..notify.messages import TEMPLATES, MessageKind, render_message
from ..tasks.task_models import CommitmentType, Task, TaskDraft, TaskStatus

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

E = TypeVar("E", bound=StrEnum)
T = TypeVar("T")

logger = logging.getLogger(__name__)

DEADLINE_FORMATS = ("%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M", "%Y-%m-%d")


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /tasks, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.

        Domain errors (validation, missing records, failed writes) become the reply.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except Exception:
            nparams = 3

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return h3(state, args, emit)

            h2 = cast(CommandHandler2, handler)
            return h2(state, args)
        except GemDeskError as e:
            logger.info("/%s rejected: %s", name, e)
            return f"Error: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- helpers ----


def _run(state: AppState, coro: Coroutine[Any, Any, T]) -> T:
    """Run an engine coroutine on the background loop, or inline when no runner is up."""
    if state.runner is not None:
        return state.runner.call(coro)
    return asyncio.run(coro)


def _fmt_ts(ts: float, state: AppState) -> str:
    return datetime.fromtimestamp(ts, state.tz).strftime("%Y-%m-%d %H:%M")


def _parse_deadline(raw: str, state: AppState) -> float:
    raw = raw.strip()
    for fmt in DEADLINE_FORMATS:
        try:
            dt = datetime.strptime(raw, fmt)
        except ValueError:
            continue
        if fmt == "%Y-%m-%d":
            # A bare date means "by the end of that day".
            dt = dt.replace(hour=23, minute=59)
        if state.tz is not None:
            dt = dt.replace(tzinfo=state.tz)
        return dt.timestamp()
    raise ValidationError(f"invalid deadline {raw!r} (use YYYY-MM-DD [HH:MM])")


def _enum(cls: type[E], raw: str, what: str) -> E:
    return parse_enum(cls, raw, what)


def _int(raw: str, what: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{what} must be an integer") from None


def _resolve_id(ids: Iterable[str], prefix: str, what: str) -> str:
    """Accept a full id or an unambiguous prefix of one."""
    ids = list(ids)
    if prefix in ids:
        return prefix
    hits = [i for i in ids if i.startswith(prefix)]
    if len(hits) == 1:
        return hits[0]
    if not hits:
        raise ValidationError(f"no {what} matches {prefix!r}")
    raise ValidationError(f"{prefix!r} matches {len(hits)} {what}s, use a longer prefix")


def _task_id(state: AppState, prefix: str) -> str:
    return _resolve_id((t.id for t in state.engine.tasks()), prefix, "task")


def _client_id(state: AppState, prefix: str) -> str:
    return _resolve_id((c.id for c in state.clients.clients()), prefix, "client")


def _gem_id(state: AppState, prefix: str) -> str:
    return _resolve_id((g.id for g in state.gems.gems()), prefix, "gem")


def _pipe_fields(args: list[str]) -> list[str]:
    return [p.strip() for p in " ".join(args).split("|")]


def _task_line(task: Task, state: AppState) -> str:
    flag = " (auto)" if task.auto_delayed else ""
    line = (
        f"[{task.id[:8]}] {task.title} - {task.status.value}{flag}, {task.priority.value}, "
        f"due {_fmt_ts(task.deadline, state)}"
    )
    if task.commitment_type is not None:
        line += f", {task.commitment_type.value} {task.completed_quantity or 0}/{task.quantity or 0}"
    if task.admin_verified:
        line += ", verified"
    return line


# ---- commands ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    settings = state.settings
    stats = state.engine.stats(getattr(settings, "gem_id", None))
    scanner = state.engine.scanner
    scope = getattr(settings, "gem_id", None) or "all gems"
    return (
        "Status:\n"
        f"  Database: {getattr(settings, 'db_path', '?')}\n"
        f"  Scope: {scope}\n"
        f"  Tasks: {stats.total} (pending {stats.pending}, ongoing {stats.ongoing}, "
        f"completed {stats.completed}, delayed {stats.delayed})\n"
        f"  Delay sweep: {'running' if scanner.running else 'stopped'}, "
        f"every {scanner.interval_seconds:g}s, {len(scanner.in_flight())} in flight"
    )


def cmd_tasks(state: AppState, args: list[str]) -> str:
    """
    /tasks            -> present/future/past buckets for every visible task
    /tasks <gem>      -> same, one gem only
    """
    gem_id = _gem_id(state, args[0]) if args else None
    buckets = state.engine.buckets(gem_id)
    lines: list[str] = []
    for title, items in (("Present", buckets.present), ("Future", buckets.future), ("Past", buckets.past)):
        lines.append(f"{title} ({len(items)}):")
        lines.extend(f"  {_task_line(t, state)}" for t in items)
    return "\n".join(lines)


TASK_USAGE = (
    "Usage:\n"
    "  /task add <gem>|<title>|<YYYY-MM-DD [HH:MM]>[|<client>|<type>|<qty>]\n"
    "  /task show <id>\n"
    "  /task status <id> <pending|ongoing|completed|delayed>\n"
    "  /task done <id> <completed quantity>\n"
    "  /task verify <id> [off]\n"
    "  /task rm <id>"
)


def _task_add(state: AppState, args: list[str]) -> str:
    fields = _pipe_fields(args)
    if len(fields) < 3:
        return TASK_USAGE
    gem, title, deadline = fields[:3]
    client_id = _client_id(state, fields[3]) if len(fields) > 3 and fields[3] else None
    ctype = _enum(CommitmentType, fields[4], "commitment type") if len(fields) > 4 and fields[4] else None
    qty = _int(fields[5], "quantity") if len(fields) > 5 and fields[5] else None

    draft = TaskDraft(
        gem_id=_gem_id(state, gem),
        title=title,
        deadline=_parse_deadline(deadline, state),
        client_id=client_id,
        commitment_type=ctype,
        quantity=qty,
    )
    task_id = _run(state, state.engine.create_task(draft))
    return f"Task created: {task_id}"


def _task_show(state: AppState, task_id: str) -> str:
    task = state.engine.get_task(task_id)
    gem = state.gems.find(task.gem_id)
    links = resolve_drive_links(task, gem)
    lines = [
        _task_line(task, state),
        f"  Gem: {gem.name if gem else task.gem_id}",
        f"  Category: {state.engine.categorize(task).value}",
    ]
    if task.description:
        lines.append(f"  {task.description}")
    if task.client_id is not None:
        client = state.clients.get_client(task.client_id)
        lines.append(f"  Client: {client.business_name}")
    lines.append(f"  Assets: {links.asset_url or '-'}")
    lines.append(f"  Upload: {links.upload_url or '-'}")
    return "\n".join(lines)


def cmd_task(state: AppState, args: list[str]) -> str:
    if not args:
        return TASK_USAGE

    sub = args[0].lower()
    if sub == "add":
        return _task_add(state, args[1:])

    if len(args) < 2:
        return TASK_USAGE
    task_id = _task_id(state, args[1])

    if sub == "show":
        return _task_show(state, task_id)

    if sub == "status" and len(args) >= 3:
        status = _enum(TaskStatus, args[2].lower(), "status")
        _run(state, state.engine.set_status(task_id, status))
        return f"Task {task_id[:8]} is now {status.value}."

    if sub == "done" and len(args) >= 3:
        value = _int(args[2], "completed quantity")
        _run(state, state.engine.update_completed_quantity(task_id, value))
        return f"Task {task_id[:8]} completed quantity set to {value}."

    if sub == "verify":
        verified = not (len(args) >= 3 and args[2].lower() in ("off", "no", "0", "false"))
        _run(state, state.engine.set_verified(task_id, verified))
        return f"Task {task_id[:8]} {'verified' if verified else 'unverified'}."

    if sub in ("rm", "delete"):
        _run(state, state.engine.delete_task(task_id))
        return f"Task {task_id[:8]} deleted."

    return TASK_USAGE


def cmd_sweep(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if emit:
        open_count = sum(1 for t in state.engine.tasks() if t.is_open)
        emit(f"[SWEEP] Checking {open_count} open task(s)...")
    count = _run(state, state.engine.scanner.sweep())
    return f"Delay sweep done: {count} task(s) marked delayed."


def cmd_gems(state: AppState, args: list[str]) -> str:
    gems = state.gems.search(" ".join(args))
    if not gems:
        return "No gems."
    lines = [f"Gems ({len(gems)}):"]
    for g in gems:
        stats = state.engine.stats(g.id)
        lines.append(
            f"  [{g.id[:8]}] {g.name} <{g.email}> {g.phone} - "
            f"{stats.total} tasks, {stats.delayed} delayed"
        )
    return "\n".join(lines)


def cmd_gem(state: AppState, args: list[str]) -> str:
    usage = "Usage: /gem add <name>|<phone>|<email>[|<drive folder url>] | /gem rm <id>"
    if not args:
        return usage
    sub = args[0].lower()
    if sub == "add":
        fields = _pipe_fields(args[1:])
        if len(fields) < 3:
            return usage
        gem_id = _run(
            state,
            state.gems.create_gem(
                name=fields[0],
                phone=fields[1],
                email=fields[2],
                drive_folder_url=fields[3] if len(fields) > 3 else None,
            ),
        )
        return f"Gem created: {gem_id}"
    if sub in ("rm", "delete") and len(args) >= 2:
        gem_id = _gem_id(state, args[1])
        removed = _run(state, state.gems.delete_gem(gem_id))
        return f"Gem {gem_id[:8]} deleted ({removed} task(s) removed)."
    return usage


def cmd_clients(state: AppState, args: list[str]) -> str:
    clients = state.clients.search(" ".join(args))
    if not clients:
        return "No clients."
    lines = [f"Clients ({len(clients)}):"]
    for c in clients:
        lines.append(
            f"  [{c.id[:8]}] {c.business_name} ({c.project_label}) {c.phone} - "
            f"{c.total_project_cost:.2f}"
        )
    return "\n".join(lines)


def cmd_client(state: AppState, args: list[str]) -> str:
    types = ", ".join(p.value for p in PROJECT_TYPE_LABELS)
    usage = (
        "Usage: /client add <name>|<phone>|<total cost>|<project type>"
        "[|<real>,<ai>,<posters>,<views>][|<custom label>] | /client rm <id>\n"
        f"Project types: {types}"
    )
    if not args:
        return usage
    sub = args[0].lower()
    if sub == "add":
        fields = _pipe_fields(args[1:])
        if len(fields) < 4:
            return usage
        try:
            cost = float(fields[2])
        except ValueError:
            raise ValidationError("total cost must be a number") from None
        commitment = None
        if len(fields) > 4 and fields[4]:
            counts = [_int(x.strip(), "commitment count") for x in fields[4].split(",")]
            if len(counts) != 4:
                return usage
            commitment = SocialMediaCommitment(*counts)
        draft = ClientDraft(
            business_name=fields[0],
            phone=fields[1],
            project_type=_enum(ProjectType, fields[3], "project type"),
            total_project_cost=cost,
            custom_project_type=fields[5] if len(fields) > 5 else None,
            social_media_commitment=commitment,
        )
        client_id = _run(state, state.clients.create_client(draft))
        return f"Client created: {client_id}"
    if sub in ("rm", "delete") and len(args) >= 2:
        client_id = _client_id(state, args[1])
        _run(state, state.clients.delete_client(client_id))
        return f"Client {client_id[:8]} deleted."
    return usage


def cmd_progress(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /progress <client>"
    client_id = _client_id(state, args[0])
    client = state.clients.get_client(client_id)
    rows = state.engine.progress(client_id)
    if not rows:
        return f"{client.business_name}: no commitments or linked tasks."
    lines = [f"Progress for {client.business_name}:"]
    for ct, row in rows.items():
        target = "unlimited" if row.target is None else str(row.target)
        lines.append(
            f"  {ct.value}: target {target}, assigned {row.assigned}, "
            f"completed {row.completed}, verified {row.verified} ({row.total} tasks)"
        )
    return "\n".join(lines)


def cmd_finance(state: AppState, args: list[str]) -> str:
    if args:
        client_id = _client_id(state, args[0])
        f = state.clients.financials(client_id)
        return (
            f"Financials for {state.clients.get_client(client_id).business_name}:\n"
            f"  Project cost: {f.total_project_cost:.2f}\n"
            f"  Work split: {f.work_split:.2f}\n"
            f"  Company split: {f.company_split:.2f}\n"
            f"  Marketing: {f.digital_marketing_total:.2f}\n"
            f"  Travel: {f.travelling_charges:.2f}\n"
            f"  Net profit: {f.net_profit:.2f}"
        )
    s = state.clients.summary()
    return (
        "Financial summary:\n"
        f"  Revenue: {s.total_revenue:.2f} (projects {s.total_project_costs:.2f}, "
        f"other income {s.total_other_income:.2f})\n"
        f"  Work split: {s.total_work_split:.2f}\n"
        f"  Company split: {s.total_company_split:.2f}\n"
        f"  Marketing: {s.total_digital_marketing_costs:.2f}\n"
        f"  Travel: {s.total_travelling_charges:.2f}\n"
        f"  Other expenses: {s.total_other_expenses:.2f}\n"
        f"  Net profit: {s.net_profit:.2f}"
    )


def cmd_cost(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /cost <client> <amount> [description]"
    client_id = _client_id(state, args[0])
    try:
        amount = float(args[1])
    except ValueError:
        raise ValidationError("amount must be a number") from None
    _run(
        state,
        state.clients.add_digital_marketing_cost(client_id, amount=amount, description=" ".join(args[2:])),
    )
    return f"Marketing cost {amount:.2f} added."


def cmd_travel(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /travel <client> <amount>"
    client_id = _client_id(state, args[0])
    try:
        amount = float(args[1])
    except ValueError:
        raise ValidationError("amount must be a number") from None
    _run(state, state.clients.set_travelling_charges(client_id, amount))
    return f"Travelling charges set to {amount:.2f}."


def cmd_tx(state: AppState, args: list[str]) -> str:
    """
    /tx                                        -> list transactions
    /tx add <income|expense> <amount> <category> [description]
    /tx rm <id>
    """
    if not args or args[0].lower() == "list":
        txs = state.clients.transactions()
        if not txs:
            return "No transactions."
        lines = [f"Transactions ({len(txs)}):"]
        for tx in txs:
            lines.append(
                f"  [{tx.id[:8]}] {tx.type.value} {tx.amount:.2f} {tx.category}"
                + (f" - {tx.description}" if tx.description else "")
            )
        return "\n".join(lines)

    sub = args[0].lower()
    if sub == "add" and len(args) >= 4:
        tx_type = _enum(TransactionType, args[1].lower(), "transaction type")
        tx_id = _run(
            state,
            state.clients.create_transaction(
                type=tx_type, category=args[3], amount=args[2], description=" ".join(args[4:])
            ),
        )
        return f"Transaction created: {tx_id}"
    if sub in ("rm", "delete") and len(args) >= 2:
        tx_id = _resolve_id((t.id for t in state.clients.transactions()), args[1], "transaction")
        _run(state, state.clients.delete_transaction(tx_id))
        return f"Transaction {tx_id[:8]} deleted."
    return "Usage: /tx | /tx add <income|expense> <amount> <category> [description] | /tx rm <id>"


def cmd_msg(state: AppState, args: list[str]) -> str:
    """
    /msg <kind> <task>          -> render a reminder template for the task's gem
    /msg custom <task> <text>   -> free text (remembered for reuse)
    /msg history                -> recently used custom messages
    """
    kinds = ", ".join(t.kind.value for t in TEMPLATES.values())
    usage = f"Usage: /msg <kind> <task> | /msg custom <task> <text> | /msg history\nKinds: {kinds}"
    if not args:
        return usage

    sub = args[0].lower()
    if sub == "history":
        items = state.messages.items()
        if not items:
            return "No custom messages yet."
        return "\n".join(f"{i}. {text}" for i, text in enumerate(items, start=1))

    if len(args) < 2:
        return usage
    task = state.engine.get_task(_task_id(state, args[1]))
    gem = state.gems.find(task.gem_id)
    gem_name = gem.name if gem else "there"

    if sub == "custom":
        text = " ".join(args[2:])
        if not state.messages.remember(text):
            return "Custom message is empty."
        return f"To {gem_name}{f' ({gem.phone})' if gem else ''}:\n{text.strip()}"

    kind = _enum(MessageKind, sub, "message kind")
    return render_message(kind, gem_name, task.title)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show task counts and delay sweep state.")
registry.register("tasks", cmd_tasks, help_text="List tasks by present/future/past: /tasks [gem].")
registry.register(
    "task", cmd_task, help_text="Task actions: /task add | show | status | done | verify | rm."
)
registry.register("sweep", cmd_sweep, help_text="Run one auto-delay sweep now.")
registry.register("gems", cmd_gems, help_text="List gems: /gems [query].")
registry.register("gem", cmd_gem, help_text="Gem actions: /gem add | rm.")
registry.register("clients", cmd_clients, help_text="List clients: /clients [query].")
registry.register("client", cmd_client, help_text="Client actions: /client add | rm.")
registry.register("progress", cmd_progress, help_text="Commitment progress: /progress <client>.")
registry.register("finance", cmd_finance, help_text="Financials: /finance [client].", aliases=["fin"])
registry.register("cost", cmd_cost, help_text="Add a marketing cost: /cost <client> <amount> [desc].")
registry.register("travel", cmd_travel, help_text="Set travelling charges: /travel <client> <amount>.")
registry.register("tx", cmd_tx, help_text="Transactions: /tx | /tx add | /tx rm.")
registry.register("msg", cmd_msg, help_text="Reminder texts: /msg <kind> <task> | custom | history.")
