from __future__ import annotations

import threading

from helpers import make_file_ctx

from stylesentinel.engine.tree_sitter import parse, supported_grammars


def test_supported_grammars() -> None:
    assert supported_grammars() == ("javascript", "tsx", "typescript")


def test_parse_javascript_and_typescript() -> None:
    js = parse("javascript", "const answer = compute();\n")
    assert js is not None
    assert js.root_node.type == "program"

    ts = parse("typescript", "let ready: boolean = false;\n")
    assert ts is not None
    assert not ts.root_node.has_error


def test_parse_tsx_components() -> None:
    tree = parse("tsx", "const App = (): JSX.Element => <div className=\"app\" />;\n")
    assert tree is not None
    assert not tree.root_node.has_error


def test_parse_unknown_language_returns_none() -> None:
    assert parse("cobol", "DISPLAY 'HI'.") is None


def test_syntax_errors_still_produce_a_tree() -> None:
    tree = parse("javascript", "function broken( {\n")
    assert tree is not None
    assert tree.root_node.has_error


def test_parsers_are_safe_across_threads() -> None:
    results: list[bool] = []
    lock = threading.Lock()

    def worker() -> None:
        for _ in range(20):
            tree = parse("javascript", "const value = items.map((item) => item.id);\n")
            with lock:
                results.append(tree is not None and not tree.root_node.has_error)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert results and all(results)


def test_file_context_selects_grammar_by_extension(project_ctx) -> None:
    js_ctx = make_file_ctx(project_ctx, relpath="src/app.jsx", content="const App = () => <div />;\n")
    ts_ctx = make_file_ctx(project_ctx, relpath="src/app.tsx", content="const App = (): JSX.Element => <div />;\n")
    plain_ctx = make_file_ctx(project_ctx, relpath="src/util.mts", content="export const limit: number = 2;\n")
    assert js_ctx.tree_sitter_language == "javascript"
    assert ts_ctx.tree_sitter_language == "tsx"
    assert plain_ctx.tree_sitter_language == "typescript"
    assert all(ctx.syntax_tree is not None for ctx in (js_ctx, ts_ctx, plain_ctx))
