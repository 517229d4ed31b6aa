import pytest

from podstyles.core.errors import InvalidIdentifierError, TemplateParseError
from podstyles.core.templates import (
    IMPORT_PLACEHOLDER,
    TemplateImportResolver,
    TemplateMode,
    TemplateRewriter,
    parse_template,
    print_template,
    resolve_import_path,
)

TPL = "my-app/components/button/template.hbs"
MOD = "my-app/components/button/styles.scoped.scss"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("./styles.scoped.scss", MOD),
        ("styles.scoped.scss", MOD),
        ("../card/pod-styles.scoped.scss", "my-app/components/card/pod-styles.scoped.scss"),
        ("/my-app/components/button/styles.scoped.scss", MOD),
        ("/other-app/x.scoped.scss", "other-app/x.scoped.scss"),
    ],
)
def test_resolve_import_path(raw, expected):
    assert resolve_import_path(raw, TPL) == expected


def test_relative_import_cannot_escape_the_styles_root():
    with pytest.raises(TemplateParseError):
        resolve_import_path("../../../x.scoped.scss", TPL)


def test_ast_directive_is_replaced_by_inert_comment():
    src = "<div>\n  {{import s from './styles.scoped.scss'}}\n</div>\n"
    t = parse_template(src, path=TPL)
    table = TemplateImportResolver().resolve_ast(t, TPL)

    assert table.lookup("s") == MOD
    assert table.directives[0].raw_path == "./styles.scoped.scss"
    assert (table.directives[0].location.line, table.directives[0].location.column) == (2, 3)
    assert print_template(t) == f"<div>\n  <!--{IMPORT_PLACEHOLDER}-->\n</div>\n"


def test_text_directive_is_replaced_by_inert_comment():
    src = "<div>\n  {{import s from \"./styles.scoped.scss\"}}\n</div>\n"
    text, table = TemplateImportResolver().resolve_text(src, TPL)
    assert table.aliases == {"s": MOD}
    assert text == f"<div>\n  <!--{IMPORT_PLACEHOLDER}-->\n</div>\n"


@pytest.mark.parametrize("mode", [TemplateMode.AST, TemplateMode.TEXT])
def test_both_modes_strip_directives_identically(mode, flat):
    src = "{{import a from './a.scoped.scss'}}\n{{import ui.b from '/my-app/b.scoped.scss'}}\n<p></p>"
    out = TemplateRewriter(flat, mode=mode).rewrite(src, template_module=TPL)
    assert out.text == "<!--imported styles-->\n<!--imported styles-->\n<p></p>"
    assert [(d.local_name, d.import_path) for d in out.imports] == [
        ("a", "my-app/components/button/a.scoped.scss"),
        ("ui.b", "my-app/b.scoped.scss"),
    ]


def test_later_alias_wins():
    src = "{{import s from './one.scoped.scss'}}{{import s from './two.scoped.scss'}}"
    _, table = TemplateImportResolver().resolve_text(src, TPL)
    assert table.lookup("s") == "my-app/components/button/two.scoped.scss"
    assert len(table) == 1
    assert len(table.directives) == 2


@pytest.mark.parametrize("mode", [TemplateMode.AST, TemplateMode.TEXT])
def test_unquoted_multi_word_alias_is_an_invalid_identifier(flat, mode):
    src = "{{import My Name from './styles.scoped.scss'}}"
    with pytest.raises(InvalidIdentifierError) as ei:
        TemplateRewriter(flat, mode=mode).rewrite(src, template_module=TPL)
    assert ei.value.alias == "My Name"
    assert ei.value.to_dict() == {"path": TPL, "alias": "My Name"}


def test_quoted_invalid_alias_fails_in_ast_mode(flat):
    src = "{{import \"My Name\" from './styles.scoped.scss'}}"
    with pytest.raises(InvalidIdentifierError):
        TemplateRewriter(flat).rewrite(src, template_module=TPL)


@pytest.mark.parametrize("alias", ["s", "S2", "my-styles", "ui.card", "a-1.b"])
def test_valid_aliases(alias):
    TemplateImportResolver().validate_alias(alias, TPL)


@pytest.mark.parametrize("alias", ["", "my name", "s!", "a_b", "$s", "@s"])
def test_rejected_aliases(alias):
    with pytest.raises(InvalidIdentifierError):
        TemplateImportResolver().validate_alias(alias, TPL)


def test_exempt_templates_skip_alias_validation(caplog):
    resolver = TemplateImportResolver(alias_validation_exempt=["my-app/tests/*"])
    with caplog.at_level("WARNING", logger="podstyles.templates"):
        resolver.validate_alias("weird_alias", "my-app/tests/fixture.hbs")
    assert any("alias_validation_exempt" in r.getMessage() for r in caplog.records)

    with pytest.raises(InvalidIdentifierError):
        resolver.validate_alias("weird_alias", TPL)


def test_malformed_ast_directive_is_a_parse_error(flat):
    with pytest.raises(TemplateParseError) as ei:
        TemplateRewriter(flat).rewrite("\n{{import s './x.scoped.scss'}}", template_module=TPL)
    assert ei.value.line == 2


@pytest.mark.parametrize(
    "src",
    [
        "{{import from './x.scoped.scss'}}",
        "{{import s from}}",
        "{{import s from './x.scoped.scss' extra}}",
    ],
)
def test_directive_without_name_or_path_is_a_parse_error(flat, src):
    with pytest.raises(TemplateParseError):
        TemplateRewriter(flat).rewrite(src, template_module=TPL)


@pytest.mark.parametrize("mode", [TemplateMode.AST, TemplateMode.TEXT])
def test_commented_out_directives_are_ignored(flat, mode):
    src = (
        "{{!-- {{import s from './styles.scoped.scss'}} --}}\n"
        "<!-- {{import s from './styles.scoped.scss'}} -->\n"
        "<p class={{s.primary}}></p>"
    )
    out = TemplateRewriter(flat, mode=mode).rewrite(src, template_module=TPL)
    assert out.text == src
    assert out.imports == []


def test_keyword_is_case_insensitive(flat):
    for mode in ("ast", "text"):
        out = TemplateRewriter(flat, mode=mode).rewrite("{{IMPORT s from './styles.scoped.scss'}}", template_module=TPL)
        assert out.imports[0].import_path == MOD
