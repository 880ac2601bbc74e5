import json

from django.http import JsonResponse, HttpResponse
from django.views.decorators.cache import never_cache
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods
from django.template import loader
from django.template import TemplateDoesNotExist

from . import catalogue
from .engine import score_transcript
from .errors import InterviewError
from .provisioning import create_session


def _error(exc: InterviewError) -> JsonResponse:
    return JsonResponse({"error": exc.message}, status=exc.status)


def _json_body(request):
    try:
        payload = json.loads(request.body.decode("utf-8") or "{}")
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None
    return payload if isinstance(payload, dict) else None


def health(request):
    return JsonResponse({"ok": True})


def demo(request):
    try:
        template = loader.get_template("interview/demo.html")
        return HttpResponse(template.render({}, request))
    except TemplateDoesNotExist:
        return HttpResponse(
            "Demo UI not installed. API ready:\n"
            "- GET  /api/prompts/\n"
            "- POST /api/connection-details/\n"
            "- POST /api/analyze-transcript/\n",
            content_type="text/plain",
        )


@require_http_methods(["GET"])
def prompts(request):
    return JsonResponse([p.to_dict() for p in catalogue.list_prompts()], safe=False)


@never_cache
@csrf_exempt
@require_http_methods(["POST"])
async def connection_details(request):
    payload = _json_body(request)
    if payload is None:
        return JsonResponse({"error": "Invalid JSON"}, status=400)

    try:
        details = await create_session(payload.get("prompt"))
    except InterviewError as e:
        return _error(e)

    return JsonResponse(details.to_dict())


@csrf_exempt
@require_http_methods(["POST"])
def analyze_transcript(request):
    """
    Scores a transcript against the soft skills plus ``hardSkills``.

    The model's ``scores`` and ``summary`` are returned as produced, except
    that labels nobody asked for are left out of ``scores``.
    """
    payload = _json_body(request)
    if payload is None:
        return JsonResponse({"error": "Invalid JSON"}, status=400)

    try:
        result = score_transcript(payload.get("transcript"), payload.get("hardSkills"))
    except InterviewError as e:
        return _error(e)

    return JsonResponse(result.to_dict())
