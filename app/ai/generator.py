"""
Quiz and challenge generation through OpenAI.

Calls are synchronous and bounded by the client timeout. A timeout is
reported as AIGenerationTimeout so the route can answer "try again".
"""
import json
import logging
import re

import openai

from app.ai.openai_client import get_client
from app.core.config import OPENAI_MODEL
from app.core.errors import AppError, UpstreamError, ValidationError

logger = logging.getLogger(__name__)

TECNOLOGIAS_VALIDAS = (
    # Frontend Web
    "HTML", "CSS", "JavaScript", "TypeScript", "React", "Next.js", "Tailwind CSS",
    # Backend
    "Node.js", "Express", "APIs REST", "PostgreSQL", "MongoDB",
    # Mobile
    "Kotlin", "Jetpack Compose", "Android", "Swift", "SwiftUI",
    # Dados
    "Python", "Pandas", "SQL", "Data Visualization",
    # Fundamentos
    "Lógica de Programação", "Algoritmos", "Estrutura de Dados", "Git",
)
NIVEIS_VALIDOS = ("iniciante", "intermediario", "avancado")


class AIGenerationTimeout(AppError):
    status_code = 504
    default_message = "A geração demorou mais do que o esperado. Tente novamente em alguns instantes."


class AIUnavailableError(AppError):
    status_code = 503
    default_message = "Geração por IA indisponível no momento."


PROMPT_GERAR_QUIZ = """Você é um instrutor de programação experiente. Gere um quiz de múltipla escolha.

Tecnologia: {tecnologia}
Nível: {nivel}

Regras:
- 5 perguntas, cada uma com 4 alternativas (A, B, C, D)
- Apenas uma alternativa correta por pergunta
- Adequado ao nível indicado

Formato OBRIGATÓRIO (texto puro, sem markdown), separando perguntas com ---:
1. Texto da pergunta
A) alternativa
B) alternativa
C) alternativa
D) alternativa
R: letra correta
E: explicação curta
---"""

PROMPT_GERAR_DESAFIO = """Você é um instrutor de programação experiente. Gere um desafio prático de programação.

Tecnologia: {tecnologia}
Nível: {nivel}

Requisitos do desafio:
- Deve ser implementável em 1-3 horas
- Título claro e objetivo (máximo 60 caracteres)
- Descrição detalhada do que o aluno deve fazer
- 3-5 requisitos específicos e verificáveis
- Deve resultar em código que possa ser hospedado no GitHub

IMPORTANTE: Retorne APENAS um JSON válido, sem texto adicional:
{{
  "titulo": "string",
  "descricao": "string detalhada",
  "requisitos": ["req1", "req2", "req3"]
}}"""


def _complete(prompt: str, temperature: float = 0.7, max_tokens: int = 1500) -> str:
    client = get_client()
    if client is None:
        raise AIUnavailableError()

    try:
        response = client.chat.completions.create(
            model=OPENAI_MODEL,
            messages=[
                {"role": "system", "content": "Você é um instrutor de programação de uma escola online."},
                {"role": "user", "content": prompt},
            ],
            temperature=temperature,
            max_tokens=max_tokens,
        )
    except openai.APITimeoutError:
        logger.warning("[AI] generation timed out")
        raise AIGenerationTimeout()
    except openai.AuthenticationError as e:
        logger.error("[AI] authentication failed: %s", e)
        raise AIUnavailableError()
    except openai.OpenAIError as e:
        logger.error("[AI] generation failed: %s", e)
        raise UpstreamError("Erro ao gerar conteúdo com IA", details=str(e))

    usage = getattr(response, "usage", None)
    if usage is not None:
        logger.info("[AI] tokens prompt=%s completion=%s", usage.prompt_tokens, usage.completion_tokens)

    content = (response.choices[0].message.content or "").strip()
    if not content:
        raise UpstreamError("A IA retornou uma resposta vazia")
    return content


def generate_quiz_text(tecnologia: str, nivel: str) -> str:
    logger.info("[AI] generating quiz tecnologia=%s nivel=%s", tecnologia, nivel)
    return _complete(PROMPT_GERAR_QUIZ.format(tecnologia=tecnologia, nivel=nivel))


def parse_challenge_json(text: str) -> dict:
    """Pull {titulo, descricao, requisitos} out of a model reply."""
    cleaned = re.sub(r"^```(?:json)?|```$", "", text.strip(), flags=re.MULTILINE).strip()
    match = re.search(r"\{.*\}", cleaned, flags=re.DOTALL)
    if not match:
        raise UpstreamError("Resposta da IA sem JSON", details=text[:200])
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise UpstreamError("JSON inválido retornado pela IA", details=str(e))

    titulo = str(data.get("titulo") or "").strip()
    descricao = str(data.get("descricao") or "").strip()
    requisitos = [str(r).strip() for r in (data.get("requisitos") or []) if str(r).strip()]
    if not titulo or not descricao:
        raise UpstreamError("Desafio gerado pela IA está incompleto")
    return {"titulo": titulo[:255], "descricao": descricao, "requisitos": requisitos}


def generate_challenge(tecnologia: str, nivel: str) -> dict:
    logger.info("[AI] generating desafio tecnologia=%s nivel=%s", tecnologia, nivel)
    return parse_challenge_json(_complete(PROMPT_GERAR_DESAFIO.format(tecnologia=tecnologia, nivel=nivel)))


def validate_topic(tecnologia: str, nivel: str) -> None:
    if tecnologia not in TECNOLOGIAS_VALIDAS:
        raise ValidationError(f"Tecnologia inválida. Use: {', '.join(TECNOLOGIAS_VALIDAS)}")
    if nivel not in NIVEIS_VALIDOS:
        raise ValidationError(f"Nível inválido. Use: {', '.join(NIVEIS_VALIDOS)}")
