"""
Prompt construction for the generation provider.

Each builder is a pure function of the canonical request plus mode-specific
context. Every prompt demands a single JSON object and spells out the exact
key structure; the parsers in ``aggregator`` and ``assembler`` rely on
those keys.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List

from ..models.schemas import AggregateResult, SimulationRequest


def format_respondent_id(sequence: int) -> str:
    return f"r{sequence:04d}"


def _json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False)


def _audience(request: SimulationRequest) -> str:
    return _json(request.audience.model_dump())


def build_basic_survey_prompt(request: SimulationRequest) -> str:
    return "\n".join([
        "Eres un simulador de resultados de encuestas para investigación de mercado.",
        "Devuelve SOLO un objeto JSON válido, sin texto extra, con este formato EXACTO:",
        '{"status":"completed","results":[{"questionId":"...","question":"...","type":"multiple-choice",'
        '"options":["..."],"aggregates":[{"text":"...","percentage":0-100}],"rationale":"breve"}]}',
        "Reglas:",
        "- Usa ESTRICTAMENTE demographics, psychographics y context; si existen, no digas que faltan.",
        "- Devuelve un elemento en results por cada pregunta, con el mismo questionId.",
        "- Si la pregunta trae options, usa EXACTAMENTE esos textos.",
        "- En elección única, los porcentajes deben sumar 100.",
        "- En multi-select, cada opción puede ser 0–100 y la suma puede superar 100.",
        "- No “premies” una opción sólo por estar preguntada: sé realista.",
        "",
        f"Público: {_audience(request)}",
        f"Preguntas: {_json(request.prompt_questions())}",
    ])


def build_professional_batch_prompt(request: SimulationRequest, offset: int, size: int) -> str:
    """Prompt for one batch of ``size`` respondents numbered from ``offset + 1``."""
    first_id = format_respondent_id(offset + 1)
    last_id = format_respondent_id(offset + size)
    return "\n".join([
        "Eres un simulador que genera PERSONAS SINTÉTICAS y sus respuestas para investigación de mercado.",
        f"Debes generar EXACTAMENTE {size} personas sintéticas distintas que respondan TODAS las preguntas.",
        f"Usa respondentId secuenciales desde {first_id} hasta {last_id}.",
        "Salida: SOLO un objeto JSON válido, sin texto extra, con este formato EXACTO:",
        '{"status":"completed","raw_respondents":[{"respondentId":"' + first_id + '","answers":['
        '{"questionId":"...","choice":"texto-opcion"},'
        '{"questionId":"...","choices":["texto-opcion","texto-opcion"]}]}]}',
        "Reglas IMPORTANTES:",
        "- Todas las respuestas deben usar SOLAMENTE opciones provistas en cada pregunta (texto EXACTO).",
        '- Si la pregunta es de elección única, usa "choice". Si es multi-select, usa "choices" (array, puede estar vacío).',
        "- Integra demographics, psychographics y context para variar respuestas de forma realista.",
        "- No agregues campos que no estén en el esquema.",
        "",
        f"Público: {_audience(request)}",
        f"Preguntas: {_json(request.prompt_questions())}",
    ])


def build_interview_prompt(request: SimulationRequest) -> str:
    count = request.respondent_count
    return "\n".join([
        "Eres un entrevistador virtual que genera respuestas textuales auténticas.",
        f"Para CADA pregunta, genera EXACTAMENTE {count} respuestas únicas.",
        "Cada respuesta debe ser un texto completo (2–3 oraciones), natural y realista.",
        "No incluyas porcentajes ni conteos.",
        "Salida: SOLO un objeto JSON válido, sin texto extra:",
        '{"status":"completed","results":[{"questionId":"...","question":"...","answers":[{"text":"..."},{"text":"..."}]}]}',
        "",
        f"Público: {_audience(request)}",
        f"Preguntas: {_json(request.prompt_questions())}",
    ])


def build_rationale_prompt(request: SimulationRequest, results: List[AggregateResult]) -> str:
    distributions: List[Dict[str, Any]] = [
        {
            "questionId": r.questionId,
            "question": r.question,
            "aggregates": [a.model_dump() for a in r.aggregates],
        }
        for r in results
        if r.aggregates
    ]
    return "\n".join([
        "Eres un analista de investigación de mercado.",
        "Las distribuciones ya están calculadas: NO las modifiques ni calcules nada nuevo.",
        "Para cada pregunta escribe una justificación breve (2–4 oraciones) de por qué el público respondió así.",
        "Salida: SOLO un objeto JSON válido, sin texto extra, con este formato EXACTO:",
        '{"rationales":[{"questionId":"...","rationale":"..."}]}',
        "",
        f"Público: {_audience(request)}",
        f"Resultados: {_json(distributions)}",
    ])


def build_json_retry_prompt(original_prompt: str) -> str:
    return "\n".join([
        "Tu respuesta anterior no era un JSON válido o estaba incompleta.",
        "Repite la tarea y devuelve ÚNICAMENTE un objeto JSON estricto: sin Markdown, sin comentarios, sin texto antes ni después.",
        "",
        original_prompt,
    ])
