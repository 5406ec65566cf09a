from errors import ExternalServiceError

CSV = b"region,product,sales\nNorth,A,10\nNorth,B,5\nSouth,A,3\n"


def upload(client, content=CSV, name="sales.csv"):
    return client.post("/upload", files={"file": (name, content, "text/csv")})


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_upload_returns_schema_and_summary(client, store):
    resp = upload(client)

    assert resp.status_code == 200
    body = resp.json()
    assert body["fileName"] == "sales.csv"
    assert body["columns"] == [
        {"name": "region", "type": "string"},
        {"name": "product", "type": "string"},
        {"name": "sales", "type": "number"},
    ]
    assert body["summary"]["region"] == {"uniqueCount": 2, "nullCount": 0, "totalCount": 3}
    assert body["summary"]["sales"]["stdDev"] > 0
    assert store.get(body["fileId"]).row_count == 3


def test_upload_rejects_unsupported_file(client):
    resp = upload(client, name="notes.txt")

    assert resp.status_code == 400
    body = resp.json()
    assert body["type"] == "VALIDATION_ERROR"
    assert "Unsupported file type" in body["error"]


def test_upload_rejects_header_only_csv(client):
    resp = upload(client, content=b"a,b\n")

    assert resp.status_code == 400
    assert resp.json()["status"] == 400


def test_list_datasets(client):
    file_id = upload(client).json()["fileId"]

    resp = client.get("/datasets")

    assert resp.status_code == 200
    assert resp.json() == [
        {"id": file_id, "name": "sales.csv", "columns": ["region", "product", "sales"], "rowCount": 3}
    ]


def test_analyze_returns_charts(client, assistant):
    file_id = upload(client).json()["fileId"]

    resp = client.post("/analyze", json={"fileId": file_id, "prompt": "Show total sales by region"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["insights"] == "Sales are concentrated in the north."
    assert body["chartStatus"] == "success"
    assert body["retryAttempts"] == 1
    assert "chartMessage" not in body
    chart = body["charts"][0]
    assert chart["type"] == "bar"
    assert chart["data"] == [{"region": "North", "sales": 15.0}, {"region": "South", "sales": 3.0}]
    assert assistant.analyze_calls == ["Show total sales by region"]


def test_analyze_unknown_dataset(client):
    resp = client.post("/analyze", json={"fileId": "missing", "prompt": "show sales"})

    assert resp.status_code == 404
    assert resp.json()["type"] == "NOT_FOUND"


def test_analyze_requires_fields(client):
    resp = client.post("/analyze", json={"fileId": "", "prompt": "show sales"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "fileId is required"

    resp = client.post("/analyze", json={"fileId": "abc", "prompt": ""})
    assert resp.status_code == 400
    assert resp.json()["error"] == "prompt is required"


def test_analyze_rejects_irrelevant_prompt(client):
    file_id = upload(client).json()["fileId"]

    resp = client.post("/analyze", json={"fileId": file_id, "prompt": "tell me a joke"})

    assert resp.status_code == 400
    assert resp.json()["type"] == "BAD_REQUEST"


def test_analyze_insight_failure_is_a_server_error(client, assistant):
    assistant.insights = ExternalServiceError("authentication error (status 401)")
    file_id = upload(client).json()["fileId"]

    resp = client.post("/analyze", json={"fileId": file_id, "prompt": "show sales"})

    assert resp.status_code == 500
    assert resp.json()["type"] == "INTERNAL_ERROR"


def test_analyze_exhausted_retries_is_still_ok(client, assistant):
    assistant.chart_responses = [[{"type": "bar", "x": "region", "y": "profit"}]]
    file_id = upload(client).json()["fileId"]

    resp = client.post("/analyze", json={"fileId": file_id, "prompt": "show sales"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["chartStatus"] == "failed"
    assert body["retryAttempts"] == 3
    assert body["charts"] == []


def test_request_id_is_echoed(client):
    resp = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert resp.headers["X-Request-ID"] == "req-123"

    resp = client.post("/analyze", json={"fileId": "missing", "prompt": "show sales"}, headers={"X-Request-ID": "req-9"})
    assert resp.json()["requestId"] == "req-9"


def test_suggestions(client):
    resp = client.post(
        "/suggestions",
        json={"fileId": "f1", "columns": [{"name": "sales", "type": "number"}], "summary": {}},
    )
    assert resp.status_code == 200
    assert resp.json()["suggestions"] == ["Compare sales by region", "Show the sales distribution"]

    resp = client.post("/suggestions", json={"fileId": "f1", "columns": []})
    assert resp.status_code == 400


def test_contextual_suggestions(client):
    resp = client.post(
        "/contextual-suggestions",
        json={"fileId": "f1", "recentChats": [{"role": "user", "content": "sales by region"}]},
    )
    assert resp.status_code == 200

    resp = client.post("/contextual-suggestions", json={"fileId": "f1", "recentChats": []})
    assert resp.status_code == 400
    assert resp.json()["error"] == "recentChats are required"
