"""AI providers, reply parsing and provider selection."""

import json
from io import BytesIO
from unittest.mock import Mock

import httpx
import pytest

from app.core.config import settings
from app.db.models import User
from app.services.ai_service import (
    AzureOpenAIProvider,
    BedrockProvider,
    OpenAIProvider,
    create_ai_service,
    extract_document_text,
    normalize_analysis,
    parse_json_response,
)
from app.utils.exceptions import AIConfigurationError, AIServiceError


def chat_reply(content: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def recording_client(requests, status_code=200, content="ok"):
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if status_code >= 400:
            return httpx.Response(status_code, text="rate limited")
        return httpx.Response(status_code, json=chat_reply(content))

    return httpx.Client(transport=httpx.MockTransport(handler))


class TestParseJsonResponse:
    def test_plain_json(self):
        assert parse_json_response('{"summary": "x"}') == {"summary": "x"}

    def test_fenced_block(self):
        reply = 'Here you go:\n```json\n{"summary": "fenced", "keyFindings": ["a"]}\n```\nThanks.'
        assert parse_json_response(reply) == {"summary": "fenced", "keyFindings": ["a"]}

    def test_outermost_braces(self):
        reply = 'Result: {"summary": "inline", "extractedData": {"timeline": {}}} done'
        assert parse_json_response(reply)["extractedData"] == {"timeline": {}}

    def test_unparseable_reply_becomes_summary(self):
        reply = "No structured data. " * 50
        assert parse_json_response(reply) == {"summary": reply[:500]}


class TestNormalizeAnalysis:
    def test_camel_case_keys(self):
        result = normalize_analysis({
            "summary": "ER visit",
            "extractedData": {"medicalInfo": {"diagnoses": ["whiplash"]}},
            "keyFindings": ["neck strain", 3],
        })

        assert result == {
            "summary": "ER visit",
            "extracted_data": {"medicalInfo": {"diagnoses": ["whiplash"]}},
            "key_findings": ["neck strain", "3"],
        }

    def test_defaults(self):
        result = normalize_analysis({"keyFindings": "single finding"})

        assert result["summary"] == "Document analyzed successfully."
        assert result["extracted_data"] == {}
        assert result["key_findings"] == ["single finding"]


class TestExtractDocumentText:
    def test_text_is_decoded(self):
        assert extract_document_text("Dx: fracture".encode(), "text/plain") == "Dx: fracture"

    def test_unknown_binary_is_empty(self):
        assert extract_document_text(b"\x89PNG", "image/png", "scan.png") == ""

    def test_broken_pdf_is_empty(self):
        assert extract_document_text(b"not a pdf", "application/pdf", "report.pdf") == ""


class TestOpenAIProvider:
    def test_request_shape(self):
        requests = []
        provider = OpenAIProvider(
            api_key="sk-test",
            model="gpt-test",
            base_url="https://llm.local/v1/",
            http_client=recording_client(requests, content="Hello"),
        )

        reply = provider.chat_completion([{"role": "user", "content": "Hi"}], system_prompt="Be brief")

        assert reply == "Hello"
        request = requests[0]
        assert str(request.url) == "https://llm.local/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer sk-test"
        body = json.loads(request.content)
        assert body["model"] == "gpt-test"
        assert body["messages"][0] == {"role": "system", "content": "Be brief"}
        assert "response_format" not in body

    def test_analysis_uses_json_mode(self):
        requests = []
        reply = json.dumps({"summary": "Bill for PT", "keyFindings": ["$1,200 outstanding"]})
        provider = OpenAIProvider(api_key="sk", http_client=recording_client(requests, content=reply))

        result = provider.analyze_document("Physical therapy invoice", "bill.pdf")

        assert result["summary"] == "Bill for PT"
        assert result["key_findings"] == ["$1,200 outstanding"]
        body = json.loads(requests[0].content)
        assert body["response_format"] == {"type": "json_object"}
        assert "bill.pdf" in body["messages"][0]["content"]

    def test_custom_analysis_instructions(self):
        requests = []
        provider = OpenAIProvider(api_key="sk", http_client=recording_client(requests, content="{}"))

        provider.analyze_document("text", "x.txt", instructions="Only list providers.")

        assert json.loads(requests[0].content)["messages"][0]["content"].startswith("Only list providers.")

    def test_error_status_raises(self):
        provider = OpenAIProvider(api_key="sk", http_client=recording_client([], status_code=429))

        with pytest.raises(AIServiceError) as exc:
            provider.chat_completion([{"role": "user", "content": "Hi"}])

        assert exc.value.status_code == 503

    def test_transport_error_is_wrapped(self):
        def handler(request):
            raise httpx.ConnectError("unreachable")

        provider = OpenAIProvider(api_key="sk", http_client=httpx.Client(transport=httpx.MockTransport(handler)))

        with pytest.raises(AIServiceError):
            provider.generate_demand_letter({"client_name": "A"}, [], [])

    def test_owned_client_is_closed_after_each_call(self, monkeypatch):
        real_client = httpx.Client
        opened = []

        def make_client(**kwargs):
            client = real_client(
                transport=httpx.MockTransport(lambda r: httpx.Response(200, json=chat_reply("ok"))), **kwargs
            )
            opened.append(client)
            return client

        monkeypatch.setattr(httpx, "Client", make_client)
        provider = OpenAIProvider(api_key="sk")

        provider.chat_completion([{"role": "user", "content": "one"}])
        provider.chat_completion([{"role": "user", "content": "two"}])

        assert len(opened) == 2
        assert all(client.is_closed for client in opened)
        assert opened[0].timeout.read == settings.AI_REQUEST_TIMEOUT_SECONDS

    def test_injected_client_stays_open(self):
        client = recording_client([])
        OpenAIProvider(api_key="sk", http_client=client).chat_completion([{"role": "user", "content": "Hi"}])

        assert not client.is_closed

    def test_error_carries_upstream_status(self):
        provider = OpenAIProvider(api_key="sk", http_client=recording_client([], status_code=401))

        with pytest.raises(AIServiceError) as exc:
            provider.chat_completion([{"role": "user", "content": "Hi"}])

        assert exc.value.upstream_status == 401


class TestAzureOpenAIProvider:
    def test_request_shape(self):
        requests = []
        provider = AzureOpenAIProvider(
            endpoint="https://firm.openai.azure.com/",
            api_key="azure-key",
            api_version="2024-02-15-preview",
            deployment="gpt4",
            http_client=recording_client(requests, content="Dear Sir"),
        )

        letter = provider.generate_demand_letter({"client_name": "A"}, [], [{"amount": "10.00"}])

        assert letter == "Dear Sir"
        request = requests[0]
        assert str(request.url) == (
            "https://firm.openai.azure.com/openai/deployments/gpt4/chat/completions"
            "?api-version=2024-02-15-preview"
        )
        assert request.headers["api-key"] == "azure-key"
        assert "model" not in json.loads(request.content)


class TestBedrockProvider:
    def make_client(self, text):
        client = Mock()
        client.invoke_model.return_value = {
            "body": BytesIO(json.dumps({"content": [{"type": "text", "text": text}]}).encode())
        }
        return client

    def test_invoke_model_body(self):
        client = self.make_client("Answer")
        provider = BedrockProvider(client=client, model_id="anthropic.test", max_tokens=512)

        assert provider.chat_completion([{"role": "user", "content": "Q"}], system_prompt="Sys") == "Answer"

        kwargs = client.invoke_model.call_args.kwargs
        assert kwargs["modelId"] == "anthropic.test"
        body = json.loads(kwargs["body"])
        assert body["anthropic_version"] == "bedrock-2023-05-31"
        assert body["max_tokens"] == 512
        assert body["system"] == "Sys"
        assert body["messages"] == [{"role": "user", "content": "Q"}]

    def test_no_system_key_without_prompt(self):
        client = self.make_client("{}")
        BedrockProvider(client=client, model_id="m").analyze_document("text", "a.txt")

        assert "system" not in json.loads(client.invoke_model.call_args.kwargs["body"])

    def test_client_error_is_wrapped(self):
        client = Mock()
        client.invoke_model.side_effect = RuntimeError("throttled")

        with pytest.raises(AIServiceError):
            BedrockProvider(client=client, model_id="m").analyze_document("text", "a.txt")


class TestProviderSelection:
    def test_complete_azure_config_wins(self):
        user = User(
            username="u",
            openai_api_key="sk",
            use_azure_openai=True,
            azure_openai_endpoint="https://firm.openai.azure.com",
            azure_openai_api_key="k",
            azure_model_deployment="gpt4",
        )

        provider = create_ai_service(user)

        assert isinstance(provider, AzureOpenAIProvider)
        assert provider.api_version == settings.AZURE_OPENAI_DEFAULT_API_VERSION

    def test_incomplete_azure_falls_back_to_openai(self):
        user = User(username="u", openai_api_key="sk", use_azure_openai=True, azure_openai_endpoint="https://x")

        assert isinstance(create_ai_service(user), OpenAIProvider)

    def test_server_default_is_bedrock(self, monkeypatch):
        monkeypatch.setattr(settings, "AI_DEFAULT_PROVIDER", "bedrock")

        assert isinstance(create_ai_service(User(username="u")), BedrockProvider)

    def test_nothing_configured(self, monkeypatch):
        monkeypatch.setattr(settings, "AI_DEFAULT_PROVIDER", "none")

        with pytest.raises(AIConfigurationError) as exc:
            create_ai_service(User(username="u"))

        assert exc.value.status_code == 400
