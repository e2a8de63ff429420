"""Tests for root detection and the compile-order traversal."""

from sv_order.analysis.dependency_graph import DependencyResolver
from sv_order.analysis.graph_models import DependencyGraph
from sv_order.analysis.order import OrderEngine
from sv_order.models import FileRecord


def _record(path, modules_defined=(), modules_used=(),
            packages_defined=(), packages_used=()):
    return FileRecord(
        path=path,
        modules_defined=frozenset(modules_defined),
        modules_used=frozenset(modules_used),
        packages_defined=frozenset(packages_defined),
        packages_used=frozenset(packages_used),
    )


def _order(files):
    graph = DependencyResolver().build(files)
    engine = OrderEngine()
    ordered = engine.order(graph)
    return [graph.path(i) for i in ordered], graph, engine


def _assert_respects_edges(order, graph):
    position = {path: i for i, path in enumerate(order)}
    for edge in graph.edges:
        src, dst = graph.path(edge.source), graph.path(edge.target)
        if src in position and dst in position:
            assert position[dst] < position[src], f"{dst} must precede {src}"


def test_leaf_before_top():
    order, _, _ = _order([
        _record("top.sv", modules_used=["leaf"]),
        _record("leaf.sv", modules_defined=["leaf"]),
    ])
    assert order == ["leaf.sv", "top.sv"]


def test_singleton_root():
    order, graph, engine = _order([_record("alone.sv", modules_defined=["alone"])])
    assert order == ["alone.sv"]
    assert engine.find_roots(graph) == [0]


def test_roots_follow_input_order():
    files = [_record("b.sv"), _record("a.sv"), _record("c.sv")]
    order, _, _ = _order(files)
    assert order == ["b.sv", "a.sv", "c.sv"]


def test_shared_dependency_emitted_once():
    order, graph, _ = _order([
        _record("x.sv", modules_used=["m"]),
        _record("y.sv", modules_used=["m"]),
        _record("z.sv", modules_defined=["m"]),
    ])
    assert order.count("z.sv") == 1
    assert order.index("z.sv") < order.index("x.sv")
    assert order.index("z.sv") < order.index("y.sv")
    assert order == ["z.sv", "x.sv", "y.sv"]
    _assert_respects_edges(order, graph)


def test_priority_rule_orders_package_owner_first():
    order, _, _ = _order([
        _record("A.sv", packages_defined=["P"], modules_used=["M"]),
        _record("B.sv", modules_defined=["M"], packages_used=["P"]),
    ])
    assert order == ["A.sv", "B.sv"]


def test_unresolved_external_use_still_emitted():
    order, graph, _ = _order([_record("top.sv", modules_used=["UNDEFINED_EXTERNAL"])])
    assert order == ["top.sv"]
    assert graph.edges == []


def test_cycle_without_root_is_omitted():
    files = [
        _record("P.sv", modules_defined=["p"], modules_used=["q"]),
        _record("Q.sv", modules_defined=["q"], modules_used=["p"]),
    ]
    order, graph, engine = _order(files)
    assert order == []
    assert engine.find_roots(graph) == []
    assert engine.omitted(graph, []) == [0, 1]


def test_cycle_below_a_root_is_emitted_without_duplicates():
    files = [
        _record("top.sv", modules_used=["p"]),
        _record("P.sv", modules_defined=["p"], modules_used=["q"]),
        _record("Q.sv", modules_defined=["q"], modules_used=["p"]),
    ]
    order, _, _ = _order(files)
    assert sorted(order) == ["P.sv", "Q.sv", "top.sv"]
    assert order[-1] == "top.sv"


def test_diamond_respects_all_edges():
    files = [
        _record("soc.sv", modules_defined=["soc"], modules_used=["cpu", "dma"],
                packages_used=["soc_pkg"]),
        _record("cpu.sv", modules_defined=["cpu"], modules_used=["alu", "regfile"],
                packages_used=["soc_pkg"]),
        _record("dma.sv", modules_defined=["dma"], modules_used=["fifo"],
                packages_used=["soc_pkg"]),
        _record("alu.sv", modules_defined=["alu"]),
        _record("regfile.sv", modules_defined=["regfile"], modules_used=["fifo"]),
        _record("fifo.sv", modules_defined=["fifo"]),
        _record("soc_pkg.sv", packages_defined=["soc_pkg"]),
    ]
    order, graph, _ = _order(files)
    assert sorted(order) == sorted(f.path for f in files)
    assert len(order) == len(set(order))
    assert order[-1] == "soc.sv"
    _assert_respects_edges(order, graph)


def test_deep_chain_does_not_recurse():
    files = [_record(f"f{i}.sv", modules_defined=[f"m{i}"], modules_used=[f"m{i + 1}"])
             for i in range(5000)]
    order, _, _ = _order(files)
    assert len(order) == 5000
    assert order[0] == "f4999.sv"
    assert order[-1] == "f0.sv"


def test_handles_hand_built_graph():
    graph = DependencyGraph(
        files=[_record("a.sv"), _record("b.sv"), _record("c.sv")],
        forward={0: [1, 2], 1: [2], 2: []},
        reverse={0: set(), 1: {0}, 2: {0, 1}},
    )
    engine = OrderEngine()
    assert engine.order(graph) == [2, 1, 0]
    assert engine.omitted(graph, [2, 1, 0]) == []
