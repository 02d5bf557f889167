"""WhatsApp message templates sent to influencers."""
from __future__ import annotations

from typing import Any, Mapping

MESSAGE_TYPES = ("welcome", "report", "reminder")

TEMPLATE_INFO = {
    "welcome": {
        "title": "Mensagem de Boas-vindas",
        "description": "Enviada automaticamente quando um novo influencer é cadastrado.",
    },
    "report": {
        "title": "Relatório de Vendas",
        "description": "Enviado periodicamente com o resumo de vendas e comissões.",
    },
    "reminder": {
        "title": "Lembretes",
        "description": "Enviados para incentivar a divulgação em períodos de baixa atividade.",
    },
}

DEFAULT_TEMPLATES = {
    "welcome": (
        "Olá {nome}! Bem-vindo ao nosso programa de influencers. Estamos muito felizes em ter você "
        "conosco! Seu código de cupom é {cupom}. Use-o para compartilhar com seus seguidores."
    ),
    "report": (
        "Olá {nome}! Aqui está seu relatório de vendas:\n\n"
        "Vendas hoje: R$ {valorDiario}\n"
        "Vendas totais: R$ {valorTotal}\n"
        "Comissão acumulada: R$ {comissao}\n\n"
        "Continue o ótimo trabalho!"
    ),
    "reminder": (
        "Olá {nome}! Notamos que suas vendas estão um pouco abaixo do normal. Que tal compartilhar "
        "seu cupom {cupom} novamente com seus seguidores? Seu desempenho atual é de R$ {valorDiario} "
        "hoje e R$ {valorTotal} no total."
    ),
}

PREVIEW_DATA = {
    "nome": "Ana Silva",
    "cupom": "ANA10",
    "valorDiario": "1.250,00",
    "valorTotal": "12.500,00",
    "comissao": "1.250,00",
}


def render_preview(content: str, data: Mapping[str, Any] = PREVIEW_DATA) -> str:
    """Substitute ``{placeholder}`` tokens; unknown placeholders are left as typed."""
    rendered = content
    for key, value in data.items():
        rendered = rendered.replace("{" + key + "}", str(value))
    return rendered


def resolve_templates(saved: Any) -> dict[str, dict[str, str]]:
    """Merge templates stored for the user over the defaults.

    ``saved`` is the ``messageTemplates`` object from the user settings,
    mapping a type to either the content string or ``{"content": ...}``.
    """
    saved = saved if isinstance(saved, Mapping) else {}
    resolved: dict[str, dict[str, str]] = {}
    for message_type in MESSAGE_TYPES:
        stored = saved.get(message_type)
        if isinstance(stored, Mapping):
            stored = stored.get("content")
        content = stored if isinstance(stored, str) and stored.strip() else DEFAULT_TEMPLATES[message_type]
        resolved[message_type] = {
            **TEMPLATE_INFO[message_type],
            "content": content,
            "preview": render_preview(content),
        }
    return resolved
