"""
CSV hooks: export records, read them back and merge per-task files.

Columns are described by ``fields``, a list of column labels or of
``{"label": ..., "value": <path>}`` mappings where the path is resolved in
each record, e.g. ``{"label": "Latmin", "value": "bbox[1]"}``.
"""

import csv
import io
from typing import Any, Dict, List, Optional, Tuple

from crawlflow.core.exceptions.custom_exceptions import (
    ConfigurationError,
    DomainError,
)
from crawlflow.core.logging.logger import get_logger
from crawlflow.hooks.builtin.store import add_output, resolve_location
from crawlflow.hooks.context import (
    HookContext,
    Phase,
    ensure_phase,
    get_store_from_context,
)
from crawlflow.storage.base import require_path
from crawlflow.utils.objects import get_path, set_path
from crawlflow.utils.templates import render_template

logger = get_logger(__name__)

DEFAULT_DATA_PATH = "result.data"
DEFAULT_CSV_KEY = "{{ id }}.csv"

Field = Tuple[str, str]


def _parse_fields(hook_name: str, fields: Any) -> Optional[List[Field]]:
    if fields is None:
        return None
    if not isinstance(fields, list):
        raise ConfigurationError(
            f"The '{hook_name}' hook fields must be a list",
            details={"hook": hook_name},
        )

    parsed = []
    for entry in fields:
        if isinstance(entry, str):
            parsed.append((entry, entry))
        elif isinstance(entry, dict) and entry.get("value"):
            parsed.append((entry.get("label") or entry["value"], entry["value"]))
        else:
            raise ConfigurationError(
                f"Invalid field {entry!r} for the '{hook_name}' hook",
                details={"hook": hook_name},
            )
    return parsed


def _records(data: Any) -> List[Any]:
    if data is None:
        return []
    return list(data) if isinstance(data, (list, tuple)) else [data]


def _cell(value: Any) -> Any:
    return "" if value is None else value


def to_csv(
    records: List[Any],
    fields: Optional[List[Field]],
    headers: bool = True,
    delimiter: str = ",",
) -> str:
    """Render records as CSV text, columns default to the first record keys"""
    if fields is None:
        first = records[0] if records else {}
        fields = [(key, key) for key in first] if isinstance(first, dict) else []

    buffer = io.StringIO()
    writer = csv.writer(buffer, delimiter=delimiter, lineterminator="\n")
    if headers:
        writer.writerow([label for label, _ in fields])
    for record in records:
        writer.writerow([_cell(get_path(record, path)) for _, path in fields])
    return buffer.getvalue()


def write_csv(options: Dict[str, Any]):
    """
    Export the records at ``dataPath`` as a CSV file.

    The store must be backed by a directory so that the file can be picked
    up by other tools.

    Options:
        dataPath: Records location in the context, default ``result.data``
        fields: Column definitions, default the keys of the first record
        store: Store id, defaults to the store of the processed entity
        key: Key template, default ``{{ id }}.csv``
        headers: Write a header line, default True
        delimiter: Column delimiter, default ``,``
    """
    data_path = options.get("dataPath", DEFAULT_DATA_PATH)
    fields = _parse_fields("writeCSV", options.get("fields"))

    async def hook(context: HookContext) -> HookContext:
        ensure_phase(context, "writeCSV", Phase.AFTER)

        store, key = resolve_location(context, "writeCSV", options, DEFAULT_CSV_KEY)
        root = require_path(store, "writeCSV")

        records = _records(get_path(context, data_path))
        content = to_csv(
            records,
            fields,
            headers=options.get("headers", True),
            delimiter=options.get("delimiter", ","),
        )
        await store.write(key, content.encode(options.get("encoding", "utf-8")))
        logger.debug(
            f"Wrote {len(records)} records to {root / key}", store_id=store.id
        )
        add_output(context, key)
        return context

    return hook


def _parse_csv(text: str, headers: bool, delimiter: str) -> List[Any]:
    buffer = io.StringIO(text, newline="")
    if headers:
        return [dict(row) for row in csv.DictReader(buffer, delimiter=delimiter)]
    return [row for row in csv.reader(buffer, delimiter=delimiter)]


def read_csv(options: Dict[str, Any]):
    """
    Read a CSV file into the records at ``dataPath``.

    With ``headers`` (the default) each row becomes a mapping keyed by the
    header line, otherwise a list of values. Records already present at
    ``dataPath`` are kept and the new rows appended.
    """
    data_path = options.get("dataPath", DEFAULT_DATA_PATH)
    headers = options.get("headers", True)
    delimiter = options.get("delimiter", ",")

    async def hook(context: HookContext) -> HookContext:
        ensure_phase(context, "readCSV", Phase.AFTER)

        store, key = resolve_location(context, "readCSV", options, DEFAULT_CSV_KEY)
        content = await store.read(key)
        try:
            rows = _parse_csv(
                content.decode(options.get("encoding", "utf-8")), headers, delimiter
            )
        except (UnicodeDecodeError, csv.Error) as e:
            raise DomainError(
                f"Failed to parse {key}: {e}",
                details={"hook": "readCSV", "key": key},
            ) from e

        existing = get_path(context, data_path)
        if isinstance(existing, list):
            existing.extend(rows)
        else:
            set_path(context, data_path, rows)
        return context

    return hook


def merge_csv(options: Dict[str, Any]):
    """
    Merge the CSV files of the successful tasks into a single job file.

    Used on the job ``after`` chain: the input key of every successful
    task outcome is rendered from ``inputKey`` (default ``{{ id }}.csv``
    with the task id) and the merged file is written under ``key``
    (default ``{{ id }}.csv`` with the job id). With ``headers`` (the
    default) every input starts with the same header line, which is
    written once.
    """
    headers = options.get("headers", True)
    delimiter = options.get("delimiter", ",")
    input_key = options.get("inputKey", DEFAULT_CSV_KEY)

    async def hook(context: HookContext) -> HookContext:
        ensure_phase(context, "mergeCSV", Phase.AFTER)
        if not isinstance(context.result, list):
            raise DomainError(
                "The 'mergeCSV' hook expects the task outcomes of a job",
                details={"hook": "mergeCSV"},
            )

        input_store = get_store_from_context(
            context, "mergeCSV", options.get("inputStore")
        )
        output_store, output_key = resolve_location(
            context, "mergeCSV", options, DEFAULT_CSV_KEY
        )

        header = None
        merged = 0
        async with output_store.create_write_stream(output_key) as writer:
            for outcome in context.result:
                if not get_path(outcome, "success", True):
                    continue
                key = render_template(
                    input_key,
                    {
                        "id": get_path(outcome, "id"),
                        "result": get_path(outcome, "result"),
                    },
                    ConfigurationError,
                )
                content = await input_store.read(key)
                rows = list(
                    csv.reader(
                        io.StringIO(content.decode("utf-8"), newline=""),
                        delimiter=delimiter,
                    )
                )
                if headers and rows:
                    if header is None:
                        header = rows[0]
                    elif rows[0] != header:
                        raise DomainError(
                            f"Header of {key} does not match the merged header",
                            error_code="CSV_HEADER_MISMATCH",
                            details={"hook": "mergeCSV", "key": key},
                        )
                    else:
                        rows = rows[1:]

                buffer = io.StringIO()
                csv.writer(
                    buffer, delimiter=delimiter, lineterminator="\n"
                ).writerows(rows)
                await writer.write(buffer.getvalue().encode("utf-8"))
                merged += 1

        logger.info(
            f"Merged {merged} CSV files into {output_key}",
            store_id=output_store.id,
        )
        return context

    return hook
