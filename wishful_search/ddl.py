"""
Structured DDL: turns Table definitions into SQL.

Two renderings are produced from the same tables:
- storage: every column, no comments. Used to create the database.
- model-facing: only columns visible to the LLM, each annotated with its
  description and examples (static, or dynamic enums computed from the data).
"""
from __future__ import annotations

from typing import Dict, List, Optional

from .errors import SchemaInvalid
from .models import Column, DBColumn, ExamplesEnumData, MinMaxEnumData, Table


def validate_structured_ddl(tables: List[Table], primary_key: Optional[DBColumn] = None) -> bool:
    """
    Basic checks so that indexing and querying can work.

    The first table is the primary table: it is the root of the join graph
    and cannot depend on any other table.
    """
    if not tables:
        raise SchemaInvalid("No tables found in structured DDL, or missing primary table.")

    primary = tables[0]
    if any(column.foreign_key for column in primary.columns):
        raise SchemaInvalid(
            "Primary (first) table in the structured ddl cannot have foreign key relationships"
        )

    if primary_key is not None and primary_key.table != primary.name:
        raise SchemaInvalid(
            f"Primary key table {primary_key.table} must be the first table ({primary.name})."
        )

    names = {table.name for table in tables}
    edges: Dict[str, List[str]] = {table.name: [] for table in tables}
    for table in tables:
        for column in table.columns:
            fk = column.foreign_key
            if fk is None:
                continue
            if fk.table not in names:
                raise SchemaInvalid(
                    f"Foreign key {table.name}.{column.name} references unknown table {fk.table}."
                )
            edges[table.name].append(fk.table)

    _check_acyclic(edges)
    return True


def _check_acyclic(edges: Dict[str, List[str]]) -> None:
    visiting, done = set(), set()

    def visit(node: str) -> None:
        if node in done:
            return
        if node in visiting:
            raise SchemaInvalid(f"Foreign keys form a cycle through table {node}.")
        visiting.add(node)
        for target in edges[node]:
            visit(target)
        visiting.discard(node)
        done.add(node)

    for node in edges:
        visit(node)


def _examples_str(column: Column) -> str:
    data = column.dynamic_enum_data
    if isinstance(data, ExamplesEnumData):
        return f"e.g. {', '.join(data.examples)}"
    if isinstance(data, MinMaxEnumData):
        examples = f"between {data.min} and {data.max}"
        if data.exceptions:
            examples += f" (or {','.join(str(ex) for ex in data.exceptions)})"
        return examples
    if column.static_examples:
        return f"e.g. {', '.join(column.static_examples)}"
    return ""


def generate_comment(column: Column) -> str:
    pieces = []
    if column.description:
        pieces.append(column.description)
    examples = _examples_str(column)
    if examples:
        pieces.append(examples)
    return f" --{' '.join(pieces)}" if pieces else ""


def generate_table_ddl(table: Table, for_llm: bool) -> str:
    """
    Generate CREATE TABLE for one table.

    Foreign keys become ON DELETE CASCADE constraints after the columns, so
    deleting a primary row removes its dependents.
    """
    columns = [c for c in table.columns if not for_llm or c.visible_to_llm]

    fk_lines = [
        f"FOREIGN KEY ({c.name}) REFERENCES {c.foreign_key.table}({c.foreign_key.column}) ON DELETE CASCADE"
        for c in columns
        if c.foreign_key is not None
    ]

    rows = []
    for idx, column in enumerate(columns):
        is_last = idx == len(columns) - 1 and not fk_lines
        comment = generate_comment(column) if for_llm else ""
        rows.append(f"{column.name} {column.column_spec}{'' if is_last else ','}{comment}")

    fk_block = ("\n" + ",\n".join(fk_lines)) if fk_lines else ""
    return f"CREATE TABLE IF NOT EXISTS {table.name} (\n" + "\n".join(rows) + fk_block + "\n);"


def generate_sql_ddl(tables: List[Table], for_llm: bool) -> str:
    return "\n\n".join(generate_table_ddl(table, for_llm) for table in tables)
