from __future__ import annotations

import concurrent.futures

import pytest

from podstyles.core.errors import LedgerNotSealedError, LedgerSealedError
from podstyles.core.ledger import DiagnosticKind, UsageLedger
from podstyles.core.models import ClassDefinition, ClassUsage
from podstyles.core.observability.metrics import snapshot_named

MOD = "my-app/components/button/styles.scoped.scss"


def _define(ledger: UsageLedger, module: str, *names: str) -> None:
    for n in names:
        ledger.register_defined(ClassDefinition(class_name=n, module_path=module))


def _use(ledger: UsageLedger, module: str, *names: str, template: str = "my-app/components/button/template.hbs") -> None:
    for n in names:
        ledger.register_used(ClassUsage(local_name="s", member_name=n, import_path=module, template_path=template))


def test_one_unused_class_and_nothing_else(ledger):
    _define(ledger, MOD, "a", "b")
    _use(ledger, MOD, "a")
    ledger.seal()

    diags = ledger.reconcile()
    assert len(diags) == 1
    assert diags[0].kind is DiagnosticKind.UNUSED_CLASS
    assert diags[0].class_name == "b"
    assert diags[0].module_path == MOD


def test_all_four_kinds(ledger):
    _define(ledger, "ns/unused/styles.scoped.scss", "x")
    _define(ledger, MOD, "a", "b")
    _use(ledger, MOD, "a", "ghost")
    _use(ledger, "ns/nowhere/styles.scoped.scss", "y")
    ledger.seal()

    kinds = {(d.kind, d.class_name) for d in ledger.reconcile()}
    assert kinds == {
        (DiagnosticKind.UNUSED_STYLE_MODULE, None),
        (DiagnosticKind.UNUSED_CLASS, "b"),
        (DiagnosticKind.MISSING_CLASS, "ghost"),
        (DiagnosticKind.MISSING_STYLE_MODULE, None),
    }


def test_unused_module_does_not_also_report_each_class(ledger):
    _define(ledger, MOD, "a", "b", "c")
    ledger.seal()

    diags = ledger.reconcile()
    assert [d.kind for d in diags] == [DiagnosticKind.UNUSED_STYLE_MODULE]
    assert diags[0].data["classes"] == ["a", "b", "c"]


def test_missing_class_names_the_templates(ledger):
    _define(ledger, MOD, "a")
    _use(ledger, MOD, "a")
    _use(ledger, MOD, "nope", template="ns/one.hbs")
    _use(ledger, MOD, "nope", template="ns/two.hbs")
    ledger.seal()

    (d,) = ledger.reconcile()
    assert d.kind is DiagnosticKind.MISSING_CLASS
    assert d.data["templates"] == ["ns/one.hbs", "ns/two.hbs"]
    assert '"nope"' in d.message


def test_diagnostics_are_counted(ledger):
    _use(ledger, MOD, "a")
    ledger.seal()
    ledger.reconcile()
    assert snapshot_named()["diagnostics_missing_style_module"] == 1


def test_diagnostics_are_logged_as_warnings(ledger, caplog):
    _define(ledger, MOD, "a")
    ledger.seal()
    with caplog.at_level("WARNING", logger="podstyles.ledger"):
        ledger.reconcile()
    assert any("unused_style_module" in r.getMessage() for r in caplog.records)


def test_reconcile_requires_seal(ledger):
    _define(ledger, MOD, "a")
    with pytest.raises(LedgerNotSealedError):
        ledger.reconcile()


def test_registration_after_seal_is_rejected(ledger):
    ledger.seal()
    assert ledger.sealed
    with pytest.raises(LedgerSealedError):
        _define(ledger, MOD, "a")
    with pytest.raises(LedgerSealedError):
        _use(ledger, MOD, "a")


def test_clean_build_has_no_diagnostics(ledger):
    _define(ledger, MOD, "a", "b")
    _use(ledger, MOD, "b", "a", "a")
    ledger.seal()
    assert ledger.reconcile() == []
    assert ledger.defined_classes(MOD) == ["a", "b"]
    assert ledger.used_classes(MOD) == ["b", "a"]
    assert ledger.modules() == [MOD]


def test_concurrent_registration_loses_nothing(ledger):
    modules = [f"ns/m{i}/styles.scoped.scss" for i in range(8)]

    def work(i: int) -> None:
        module = modules[i % len(modules)]
        for j in range(50):
            _define(ledger, module, f"c{j}")
            _use(ledger, module, f"c{j}")

    with concurrent.futures.ThreadPoolExecutor(max_workers=8) as pool:
        for f in [pool.submit(work, i) for i in range(32)]:
            f.result()

    ledger.seal()
    assert ledger.modules() == sorted(modules)
    for m in modules:
        assert len(ledger.defined_classes(m)) == 50
    assert ledger.reconcile() == []
