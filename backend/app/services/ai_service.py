"""
AI Service: document analysis, demand letters and chat.

Three providers share one interface: AWS Bedrock (Claude, server-wide
default) and per-user OpenAI or Azure OpenAI keys. ``create_ai_service``
picks one for a user.
"""
import abc
import json
import re
from io import BytesIO
from typing import Any, Dict, List, Optional

import boto3
import httpx
import pypdf

from app.core.config import settings
from app.core.logger import logger
from app.db.models import User
from app.utils.exceptions import AIConfigurationError, AIServiceError

ANALYSIS_PROMPT = """Analyze this legal/medical document and extract comprehensive information:

Document: {file_name}
Content: {content}

Extract and return a JSON object with the following structure:
{{
  "summary": "A detailed summary of the medical document",
  "extractedData": {{
    "patientInfo": {{"names": [], "ages": [], "addresses": [], "phoneNumbers": [], "insuranceInfo": []}},
    "medicalInfo": {{"diagnoses": [], "procedures": [], "medications": [], "providers": []}},
    "timeline": {{"dates": [], "servicesPeriod": ""}},
    "locations": {{"facilities": [], "addresses": []}},
    "additionalDetails": {{"keyFindings": [], "costs": [], "complications": []}}
  }},
  "keyFindings": ["critical findings for legal case preparation"]
}}

Make sure to extract ALL specific details from the document including exact names, dates, amounts, addresses, and medical information."""

DEMAND_LETTER_PROMPT = """Generate a professional demand letter for this legal case:

Case Details: {case_data}
Documents: {documents}
Medical Bills: {bills}

Create a comprehensive demand letter that includes:
- Case summary
- Medical findings
- Financial damages
- Legal basis for claim
- Professional legal language"""

CHAT_SYSTEM_PROMPT = "You are a helpful legal AI assistant specializing in medical legal cases."

MAX_PDF_PAGES = 10
MAX_CONTENT_CHARS = 60000


# ============================================================================
# Text extraction / response parsing
# ============================================================================

def extract_with_pypdf(pdf_bytes: bytes) -> str:
    """
    Text of the first MAX_PDF_PAGES pages; empty string when unreadable.
    """
    try:
        pdf_reader = pypdf.PdfReader(BytesIO(pdf_bytes))
        text = ""
        for page in pdf_reader.pages[:MAX_PDF_PAGES]:
            page_text = page.extract_text()
            if page_text:
                text += page_text + "\n"
        return text
    except Exception as e:
        logger.error(f"pypdf extraction failed: {str(e)}")
        return ""


def extract_document_text(data: bytes, mime_type: str, file_name: str = "") -> str:
    mime_type = (mime_type or "").lower()
    if mime_type == "application/pdf" or file_name.lower().endswith(".pdf"):
        return extract_with_pypdf(data)
    if mime_type.startswith("text/") or mime_type in ("application/json", "application/xml"):
        return data.decode("utf-8", errors="replace")
    return ""


def parse_json_response(text: str) -> Dict[str, Any]:
    """
    Parse a model reply that should be JSON: plain, fenced in a ```json
    block, or the outermost ``{...}``. Unparseable replies become
    ``{"summary": <first 500 chars>}``.
    """
    try:
        parsed = json.loads(text)
        if isinstance(parsed, dict):
            return parsed
    except (json.JSONDecodeError, TypeError):
        pass

    json_match = re.search(r'```(?:json)?\s*(\{.*?\})\s*```', text or "", re.DOTALL)
    if not json_match:
        json_match = re.search(r'\{.*\}', text or "", re.DOTALL)

    if json_match:
        try:
            return json.loads(json_match.group(1) if json_match.lastindex else json_match.group())
        except json.JSONDecodeError:
            pass

    return {"summary": (text or "")[:500]}


def normalize_analysis(result: Dict[str, Any]) -> Dict[str, Any]:
    key_findings = result.get("keyFindings") or result.get("key_findings") or []
    if isinstance(key_findings, str):
        key_findings = [key_findings]
    return {
        "summary": result.get("summary") or "Document analyzed successfully.",
        "extracted_data": result.get("extractedData") or result.get("extracted_data") or {},
        "key_findings": [str(f) for f in key_findings],
    }


# ============================================================================
# Providers
# ============================================================================

class AIProvider(abc.ABC):
    """Common operations; subclasses only implement ``_complete``."""

    name = "base"

    @abc.abstractmethod
    def _complete(
        self,
        messages: List[Dict[str, str]],
        system_prompt: Optional[str] = None,
        json_mode: bool = False,
    ) -> str:
        ...

    def chat_completion(self, messages: List[Dict[str, str]], system_prompt: Optional[str] = None) -> str:
        try:
            return self._complete(messages, system_prompt)
        except AIServiceError:
            raise
        except Exception as e:
            logger.error(f"{self.name} chat completion failed: {str(e)}")
            raise AIServiceError("Failed to complete chat request")

    def analyze_document(
        self,
        content: str,
        file_name: str,
        instructions: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Returns ``{"summary", "extracted_data", "key_findings"}``.
        ``instructions`` replaces the default analysis prompt.
        """
        content = content[:MAX_CONTENT_CHARS]
        if instructions:
            prompt = f"{instructions}\n\nDocument: {file_name}\nContent: {content}\n\nRespond with a JSON object."
        else:
            prompt = ANALYSIS_PROMPT.format(file_name=file_name, content=content)

        try:
            reply = self._complete([{"role": "user", "content": prompt}], json_mode=True)
        except AIServiceError:
            raise
        except Exception as e:
            logger.error(f"{self.name} document analysis failed for {file_name}: {str(e)}")
            raise AIServiceError("Failed to analyze document")

        return normalize_analysis(parse_json_response(reply))

    def generate_demand_letter(
        self,
        case_data: Dict[str, Any],
        documents: List[Dict[str, Any]],
        bills: List[Dict[str, Any]],
        instructions: Optional[str] = None,
    ) -> str:
        prompt = DEMAND_LETTER_PROMPT.format(
            case_data=json.dumps(case_data, default=str),
            documents=json.dumps(documents, default=str),
            bills=json.dumps(bills, default=str),
        )
        try:
            return self._complete([{"role": "user", "content": prompt}], system_prompt=instructions)
        except AIServiceError:
            raise
        except Exception as e:
            logger.error(f"{self.name} demand letter generation failed: {str(e)}")
            raise AIServiceError("Failed to generate demand letter")


class BedrockProvider(AIProvider):
    """Claude on AWS Bedrock through ``invoke_model``."""

    name = "bedrock"

    def __init__(self, client=None, model_id: Optional[str] = None, max_tokens: Optional[int] = None):
        self.bedrock_client = client or boto3.client('bedrock-runtime', **settings.aws_credentials())
        self.model_id = model_id or settings.BEDROCK_MODEL_ID
        self.max_tokens = max_tokens or settings.BEDROCK_MAX_TOKENS

    def _complete(self, messages, system_prompt=None, json_mode=False) -> str:
        body: Dict[str, Any] = {
            "anthropic_version": "bedrock-2023-05-31",
            "max_tokens": self.max_tokens,
            "temperature": 0.3 if json_mode else 0.5,
            "messages": messages,
        }
        if system_prompt:
            body["system"] = system_prompt

        response = self.bedrock_client.invoke_model(modelId=self.model_id, body=json.dumps(body))
        response_body = json.loads(response['body'].read())
        return response_body['content'][0]['text']


class _ChatCompletionsProvider(AIProvider):
    """
    OpenAI-style ``/chat/completions`` over httpx.

    An injected ``http_client`` is reused and left open for its owner;
    otherwise each call opens and closes its own client.
    """

    def __init__(self, http_client: Optional[httpx.Client] = None):
        self.http_client = http_client

    def _url(self) -> str:
        raise NotImplementedError

    def _headers(self) -> Dict[str, str]:
        raise NotImplementedError

    def _payload(self, messages, json_mode: bool) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"messages": messages}
        if json_mode:
            payload["response_format"] = {"type": "json_object"}
        return payload

    def _post(self, client: httpx.Client, payload: Dict[str, Any]) -> httpx.Response:
        return client.post(self._url(), headers=self._headers(), json=payload)

    def _complete(self, messages, system_prompt=None, json_mode=False) -> str:
        chat_messages = list(messages)
        if system_prompt:
            chat_messages = [{"role": "system", "content": system_prompt}] + chat_messages
        payload = self._payload(chat_messages, json_mode)

        if self.http_client is not None:
            response = self._post(self.http_client, payload)
        else:
            with httpx.Client(timeout=settings.AI_REQUEST_TIMEOUT_SECONDS) as client:
                response = self._post(client, payload)

        if response.status_code >= 400:
            logger.error(f"{self.name} returned {response.status_code}: {response.text[:300]}")
            raise AIServiceError(
                f"{self.name} request failed with status {response.status_code}",
                upstream_status=response.status_code,
            )

        data = response.json()
        return data["choices"][0]["message"].get("content") or ""


class OpenAIProvider(_ChatCompletionsProvider):
    name = "openai"

    def __init__(self, api_key: str, model: Optional[str] = None, base_url: Optional[str] = None,
                 http_client: Optional[httpx.Client] = None):
        super().__init__(http_client)
        self.api_key = api_key
        self.model = model or settings.OPENAI_MODEL
        self.base_url = (base_url or settings.OPENAI_BASE_URL).rstrip("/")

    def _url(self) -> str:
        return f"{self.base_url}/chat/completions"

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    def _payload(self, messages, json_mode):
        payload = super()._payload(messages, json_mode)
        payload["model"] = self.model
        return payload


class AzureOpenAIProvider(_ChatCompletionsProvider):
    name = "azure-openai"

    def __init__(self, endpoint: str, api_key: str, api_version: str, deployment: str,
                 http_client: Optional[httpx.Client] = None):
        super().__init__(http_client)
        self.endpoint = endpoint.rstrip("/")
        self.api_key = api_key
        self.api_version = api_version
        self.deployment = deployment

    def _url(self) -> str:
        return (
            f"{self.endpoint}/openai/deployments/{self.deployment}/chat/completions"
            f"?api-version={self.api_version}"
        )

    def _headers(self) -> Dict[str, str]:
        return {"api-key": self.api_key}


def create_ai_service(user: User) -> AIProvider:
    """
    Azure OpenAI when the user's Azure config is complete, else the user's
    OpenAI key, else the server-wide Bedrock model.
    """
    if (
        user.use_azure_openai
        and user.azure_openai_endpoint
        and user.azure_openai_api_key
        and user.azure_model_deployment
    ):
        return AzureOpenAIProvider(
            endpoint=user.azure_openai_endpoint,
            api_key=user.azure_openai_api_key,
            api_version=user.azure_openai_version or settings.AZURE_OPENAI_DEFAULT_API_VERSION,
            deployment=user.azure_model_deployment,
        )
    if user.openai_api_key:
        return OpenAIProvider(api_key=user.openai_api_key)
    if settings.bedrock_configured:
        return BedrockProvider()

    logger.warning(f"No AI provider configured for user {user.id}")
    raise AIConfigurationError()
