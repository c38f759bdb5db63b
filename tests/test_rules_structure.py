from __future__ import annotations

from dataclasses import replace

import pytest
from helpers import make_file_ctx

from stylesentinel.rules.structure import (
    S01MagicNumber,
    S02RedundantBooleanReturn,
    S03ElseAfterReturn,
    S04DeepNesting,
    S05LookupTableDispatch,
    S06ImperativeAccumulation,
    S07NestedTernary,
    find_redundant_boolean_returns,
    parse_number,
)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("42", 42.0),
        ("1_000", 1000.0),
        ("0x1F", 31.0),
        ("0b101", 5.0),
        ("0o17", 15.0),
        ("10n", 10.0),
        ("1e3", 1000.0),
        ("0.5", 0.5),
    ],
)
def test_parse_number_handles_js_literal_forms(text: str, expected: float) -> None:
    assert parse_number(text) == expected


def test_s01_flags_unnamed_numbers(project_ctx) -> None:
    ctx = make_file_ctx(
        project_ctx,
        relpath="src/timers.js",
        content=(
            "setTimeout(refresh, 86400000);\n"
            "const MS_PER_DAY = 86400000;\n"
            "const ports = [8080, 8443];\n"
            "let retries = 5;\n"
            "const last = items[items.length - 1];\n"
            "const half = total / 2;\n"
            "const offset = -1;\n"
        ),
    )
    violations = S01MagicNumber().check_file(ctx)
    assert [v.location.start_line for v in violations] == [1, 4]
    assert violations[0].message == "Magic number `86400000`."


def test_s01_arithmetic_constants_need_a_constant_name_inside_functions(project_ctx) -> None:
    ctx = make_file_ctx(
        project_ctx,
        relpath="src/timers.js",
        content=(
            "const timeout = 60 * 1000;\n"
            "function schedule() {\n"
            "  const delay = 60 * 1000;\n"
            "  const MAX_DELAY = 5 * 60 * 1000;\n"
            "  return delay + MAX_DELAY;\n"
            "}\n"
        ),
    )
    violations = S01MagicNumber().check_file(ctx)
    assert [v.location.start_line for v in violations] == [3, 3]


def test_s01_ignores_defaults_enums_and_type_literals(project_ctx) -> None:
    ctx = make_file_ctx(
        project_ctx,
        relpath="src/levels.ts",
        content=(
            "enum Level {\n"
            "  Low = 10,\n"
            "  High = 20,\n"
            "}\n"
            "type Port = 8080 | 8443;\n"
            "function connect(retries = 3): void {}\n"
        ),
    )
    assert S01MagicNumber().check_file(ctx) == []


def test_s01_respects_allowed_numbers(project_ctx) -> None:
    ctx = make_file_ctx(project_ctx, relpath="src/pct.js", content="setProgress(value * 100);\n")
    assert len(S01MagicNumber().check_file(ctx)) == 1

    structure = replace(ctx.structure, magic_numbers_allowed=(*ctx.structure.magic_numbers_allowed, 100.0))
    assert S01MagicNumber().check_file(replace(ctx, structure=structure)) == []


def test_s02_flags_if_else_returning_boolean_literals(project_ctx) -> None:
    ctx = make_file_ctx(
        project_ctx,
        relpath="src/age.js",
        content=(
            "function isAdult(age) {\n"
            "  if (age >= ADULT_AGE) {\n"
            "    return true;\n"
            "  } else {\n"
            "    return false;\n"
            "  }\n"
            "}\n"
        ),
    )
    violations = S02RedundantBooleanReturn().check_file(ctx)
    assert len(violations) == 1
    assert violations[0].location.start_line == 2
    assert violations[0].suggestion is not None
    assert "return age >= ADULT_AGE;" in violations[0].suggestion


def test_s02_matches_trailing_return_and_negates(project_ctx) -> None:
    ctx = make_file_ctx(
        project_ctx,
        relpath="src/perm.js",
        content=(
            "function canEdit(user) {\n"
            "  if (user.admin) {\n"
            "    return false;\n"
            "  }\n"
            "  return true;\n"
            "}\n"
            "function hasName(user) {\n"
            "  if (user.name) return true;\n"
            "  return false;\n"
            "}\n"
            "function isOwner(user, doc) {\n"
            "  if (user.id === doc.ownerId) {\n"
            "    audit(user);\n"
            "    return true;\n"
            "  }\n"
            "  return false;\n"
            "}\n"
        ),
    )
    matches = find_redundant_boolean_returns(ctx)
    assert [m.replacement for m in matches] == ["return !user.admin;", "return Boolean(user.name);"]
    assert len(S02RedundantBooleanReturn().check_file(ctx)) == 2


def test_s03_flags_else_after_return(project_ctx) -> None:
    ctx = make_file_ctx(
        project_ctx,
        relpath="src/label.js",
        content=(
            "function getLabel(user) {\n"
            "  if (!user) {\n"
            "    return 'guest';\n"
            "  } else {\n"
            "    return user.name;\n"
            "  }\n"
            "}\n"
            "function isGuest(user) {\n"
            "  if (!user) {\n"
            "    return true;\n"
            "  } else {\n"
            "    return false;\n"
            "  }\n"
            "}\n"
            "function logLabel(user) {\n"
            "  if (user) {\n"
            "    log(user.name);\n"
            "  } else {\n"
            "    log('guest');\n"
            "  }\n"
            "}\n"
        ),
    )
    violations = S03ElseAfterReturn().check_file(ctx)
    assert len(violations) == 1
    assert violations[0].location.start_line == 4
    assert "`return`" in violations[0].message


def test_s03_reports_else_if_chain_once(project_ctx) -> None:
    ctx = make_file_ctx(
        project_ctx,
        relpath="src/rank.js",
        content=(
            "function getRank(score) {\n"
            "  if (score > HIGH) {\n"
            "    throw new Error('too high');\n"
            "  } else if (score > LOW) {\n"
            "    return 'mid';\n"
            "  } else {\n"
            "    return 'low';\n"
            "  }\n"
            "}\n"
        ),
    )
    violations = S03ElseAfterReturn().check_file(ctx)
    assert len(violations) == 1
    assert "`throw`" in violations[0].message


def test_s04_flags_deep_nesting(project_ctx) -> None:
    ctx = make_file_ctx(
        project_ctx,
        relpath="src/orders.js",
        content=(
            "function processOrder(order) {\n"
            "  if (order) {\n"
            "    if (order.items) {\n"
            "      for (const item of order.items) {\n"
            "        if (item.isPaid) {\n"
            "          if (item.isReady) {\n"
            "            ship(item);\n"
            "          }\n"
            "        }\n"
            "      }\n"
            "    }\n"
            "  }\n"
            "}\n"
            "function checkOrder(order) {\n"
            "  if (order) {\n"
            "    if (order.items) {\n"
            "      if (order.isPaid) {\n"
            "        ship(order);\n"
            "      }\n"
            "    }\n"
            "  }\n"
            "}\n"
        ),
    )
    violations = S04DeepNesting().check_file(ctx)
    assert len(violations) == 1
    assert violations[0].location.start_line == 6
    assert "4 levels" in violations[0].message


def test_s04_loops_do_not_count_as_conditionals(project_ctx) -> None:
    ctx = make_file_ctx(
        project_ctx,
        relpath="src/batches.js",
        content=(
            "function drain(queues) {\n"
            "  for (;;) {\n"
            "    while (queues) {\n"
            "      for (const batch of queues) {\n"
            "        switch (batch.kind) {\n"
            "          default:\n"
            "            if (batch) {\n"
            "              go();\n"
            "            }\n"
            "        }\n"
            "      }\n"
            "    }\n"
            "  }\n"
            "}\n"
        ),
    )
    assert S04DeepNesting().check_file(ctx) == []


def test_s04_else_if_chains_do_not_add_depth(project_ctx) -> None:
    ctx = make_file_ctx(
        project_ctx,
        relpath="src/kind.js",
        content=(
            "function describe(kind) {\n"
            "  if (kind === 'a') {\n"
            "    run('a');\n"
            "  } else if (kind === 'b') {\n"
            "    run('b');\n"
            "  } else if (kind === 'c') {\n"
            "    run('c');\n"
            "  } else if (kind === 'd') {\n"
            "    run('d');\n"
            "  } else if (kind === 'e') {\n"
            "    run('e');\n"
            "  }\n"
            "}\n"
        ),
    )
    assert S04DeepNesting().check_file(ctx) == []


def test_s05_flags_switch_that_only_maps_values(project_ctx) -> None:
    ctx = make_file_ctx(
        project_ctx,
        relpath="src/colors.js",
        content=(
            "function getColor(status) {\n"
            "  switch (status) {\n"
            "    case 'ok': return 'green';\n"
            "    case 'warn': return 'yellow';\n"
            "    case 'error': return 'red';\n"
            "    default: return 'gray';\n"
            "  }\n"
            "}\n"
            "function applyStatus(status) {\n"
            "  switch (status) {\n"
            "    case 'ok': markOk(); break;\n"
            "    case 'warn': markWarn(); break;\n"
            "    case 'error': markError(); break;\n"
            "  }\n"
            "}\n"
        ),
    )
    violations = S05LookupTableDispatch().check_file(ctx)
    assert len(violations) == 1
    assert violations[0].location.start_line == 2
    assert "3 branches" in violations[0].message


def test_s05_flags_assignment_switch_and_if_chain(project_ctx) -> None:
    ctx = make_file_ctx(
        project_ctx,
        relpath="src/labels.js",
        content=(
            "let label;\n"
            "switch (kind) {\n"
            "  case 'a': label = 'A'; break;\n"
            "  case 'b': label = 'B'; break;\n"
            "  case 'c': label = 'C'; break;\n"
            "}\n"
            "function getIcon(status) {\n"
            "  if (status === 'ok') {\n"
            "    return 'check';\n"
            "  } else if (status === 'warn') {\n"
            "    return 'alert';\n"
            "  } else if (status === 'error') {\n"
            "    return 'cross';\n"
            "  }\n"
            "  return 'dot';\n"
            "}\n"
            "function getMixed(a, b) {\n"
            "  if (a === 1) {\n"
            "    return 'x';\n"
            "  } else if (b === 2) {\n"
            "    return 'y';\n"
            "  } else if (a === 3) {\n"
            "    return 'z';\n"
            "  }\n"
            "}\n"
        ),
    )
    violations = S05LookupTableDispatch().check_file(ctx)
    assert [v.location.start_line for v in violations] == [2, 8]
    assert "`if/else if` chain" in violations[1].message


def test_s06_flags_loops_that_only_accumulate(project_ctx) -> None:
    ctx = make_file_ctx(
        project_ctx,
        relpath="src/collect.js",
        content=(
            "const names = [];\n"
            "for (const user of users) {\n"
            "  names.push(user.name);\n"
            "}\n"
            "let total = 0;\n"
            "for (const item of items) {\n"
            "  total += item.price;\n"
            "}\n"
            "const active = [];\n"
            "users.forEach((user) => {\n"
            "  if (user.active) {\n"
            "    active.push(user);\n"
            "  }\n"
            "});\n"
            "for (const user of users) {\n"
            "  names.push(user.name);\n"
            "  notify(user);\n"
            "}\n"
        ),
    )
    violations = S06ImperativeAccumulation().check_file(ctx)
    assert [v.location.start_line for v in violations] == [2, 6, 10]
    assert "`map()`" in (violations[0].suggestion or "")
    assert "`reduce()`" in (violations[1].suggestion or "")
    assert "`filter()`" in (violations[2].suggestion or "")


def test_s07_flags_nested_ternaries_once(project_ctx) -> None:
    ctx = make_file_ctx(
        project_ctx,
        relpath="src/label.js",
        content=(
            "const label = count === 0 ? 'none' : count === 1 ? 'one' : 'many';\n"
            "const plural = count === 1 ? '' : 's';\n"
        ),
    )
    violations = S07NestedTernary().check_file(ctx)
    assert len(violations) == 1
    assert violations[0].location.start_line == 1
    assert "2 levels" in violations[0].message


def test_s07_limit_is_configurable(project_ctx) -> None:
    ctx = make_file_ctx(
        project_ctx,
        relpath="src/label.js",
        content="const label = count === 0 ? 'none' : count === 1 ? 'one' : 'many';\n",
    )
    relaxed = replace(ctx, structure=replace(ctx.structure, max_ternary_depth=2))
    assert S07NestedTernary().check_file(relaxed) == []
