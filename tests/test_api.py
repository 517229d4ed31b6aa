from podstyles import __version__


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}
    r = client.get("/api/v1/health/live")
    assert r.status_code == 200
    assert r.json() == {"status": "alive", "version": __version__}


def test_health_increments_named_counters(client):
    client.get("/api/v1/health/live")
    counters = client.get("/api/v1/metrics/named").json()["counters"]
    assert counters["health_live"] >= 1
    assert counters["http_requests"] >= 2


def test_request_id_is_echoed_or_minted(client):
    r = client.get("/health", headers={"X-Request-Id": "rid-123"})
    assert r.headers["X-Request-Id"] == "rid-123"
    r = client.get("/health")
    assert len(r.headers["X-Request-Id"]) > 10


def test_scope_name(client):
    r = client.post(
        "/api/v1/scope/name",
        json={
            "class_name": "card-title",
            "module_path": "my-app/app/components/card/pod-styles.scoped.scss",
            "naming_scheme": "prefixed",
        },
    )
    assert r.status_code == 200
    assert r.json()["scoped_name"] == "card_card-title_3985f"


def test_scope_name_validates_input(client):
    r = client.post("/api/v1/scope/name", json={"class_name": "", "module_path": "x"})
    assert r.status_code == 422


def test_scope_style(client):
    r = client.post(
        "/api/v1/scope/style",
        json={
            "source": ".primary { color: red; }",
            "namespace": "my-app",
            "relative_path": "components/button/styles.scoped.scss",
        },
    )
    assert r.status_code == 200
    body = r.json()
    assert body["text"] == ".primary_c31ad { color: red; }"
    assert body["output_path"] == "components/button/styles.rewritten.scss"
    assert body["definitions"][0]["location"] == {"line": 1, "column": 1, "offset": 0}


def test_scope_style_parse_error_is_422(client):
    r = client.post(
        "/api/v1/scope/style",
        json={"source": ".a {\n", "namespace": "my-app", "relative_path": "x/styles.scoped.scss"},
    )
    assert r.status_code == 422
    detail = r.json()["detail"]
    assert detail["error"] == "parse_error"
    assert detail["path"] == "my-app/x/styles.scoped.scss"
    assert detail["line"] == 1


def test_scope_template(client):
    r = client.post(
        "/api/v1/scope/template",
        json={
            "source": "{{import s from './styles.scoped.scss'}}<b class={{s.primary}}></b>",
            "namespace": "my-app",
            "relative_path": "components/button/template.hbs",
            "template_mode": "text",
        },
    )
    assert r.status_code == 200
    body = r.json()
    assert body["text"] == "<!--imported styles--><b class=primary_c31ad></b>"
    assert body["usages"][0]["import_path"] == "my-app/components/button/styles.scoped.scss"


def test_scope_template_invalid_alias_is_422(client):
    r = client.post(
        "/api/v1/scope/template",
        json={
            "source": "{{import \"My Name\" from './styles.scoped.scss'}}",
            "namespace": "my-app",
            "relative_path": "components/button/template.hbs",
        },
    )
    assert r.status_code == 422
    assert r.json()["detail"] == {
        "error": "invalid_identifier",
        "path": "my-app/components/button/template.hbs",
        "alias": "My Name",
    }


def test_build(client):
    r = client.post(
        "/api/v1/scope/build",
        json={
            "files": {
                "app/x/styles.scoped.scss": ".a { } .b { }",
                "app/x/template.hbs": "{{import s from './styles.scoped.scss'}}<i class={{s.a}}></i>",
            },
            "config": {"namespace": "my-app"},
        },
    )
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True
    assert sorted(body["outputs"]) == ["app/x/styles.rewritten.scss", "app/x/template.hbs", "pod-styles.scss"]
    assert [(d["kind"], d["class_name"]) for d in body["diagnostics"]] == [("unused_class", "b")]


def test_build_reports_file_failures(client):
    r = client.post(
        "/api/v1/scope/build",
        json={"files": {"app/x/styles.scoped.scss": ".a {"}, "config": {}},
    )
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is False
    assert body["failures"][0]["error_type"] == "StyleParseError"


def test_build_rejects_bad_config(client):
    r = client.post("/api/v1/scope/build", json={"files": {}, "config": {"digest_length": 99}})
    assert r.status_code == 400


def test_prometheus_export(client):
    client.post(
        "/api/v1/scope/style",
        json={"source": ".a { }", "namespace": "n", "relative_path": "x/styles.scoped.scss"},
    )
    r = client.get("/metrics")
    assert r.status_code == 200
    assert "podstyles_classes_defined_total" in r.text


def test_unknown_route_has_no_traceback(client):
    r = client.get("/api/v1/does/not/exist")
    assert r.status_code == 404
    assert "Traceback" not in r.text


def test_server_entrypoint_serves_the_same_app():
    from podstyles.api.main import app
    from podstyles.main import app as served

    assert served is app
