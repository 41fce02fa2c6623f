# services/assistant.py
# Agente conversacional: texto do usuário -> OpenAI (tools) -> dispatcher.
# As chamadas de ferramenta de cada rodada são executadas em sequência, uma
# por vez; o resultado (texto) volta ao modelo como mensagem "tool".

import os
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from domain.tools import openai_tools

log = logging.getLogger(__name__)

SYSTEM_INSTRUCTION = """
Você é MIROMA, uma assistente pessoal e comercial de IA.

FUNÇÕES PRINCIPAIS:
1. Agenda & Encomendas:
   - Ao criar eventos, se o 'clientName' for informado, o sistema criará a ficha do cliente automaticamente.
   - Se o usuário não especificar o tipo de evento (ex: "Batizado", "Reunião"), assuma que é um CASAMENTO.
   - Use o campo 'packName' para o nome específico do serviço contratado (Ex: "Pack Gold", "Drone").
   - Sempre tente preencher 'location' se o usuário mencionar onde será.

2. Financeiro:
   - A moeda oficial é {currency}.
   - Encomendas: 100% do valor é considerado pago na data do pedido.
   - Eventos e Trabalho: 50% na reserva (bookingDate) e 50% no dia do evento.
   - Valor recebido sem contexto de evento ("Recebi 500 euros"): use 'addRevenue'.
   - Para alterar um valor errado, use 'updateEvent' com 'newPrice'. Para remover, 'deleteEvent'.

3. Clientes: você pode criar ou editar fichas de clientes. Mantenha as notas atualizadas.

ESTILO: polida, profissional e calorosa; emojis moderados.
Data/hora atual: {now}.
""".strip()

FALLBACK_REPLY = "Desculpe, não consegui formular uma resposta agora."


class AssistantUnavailable(RuntimeError):
    pass


def _make_client():
    api_key = (os.getenv("OPENAI_API_KEY") or "").strip()
    if not api_key:
        raise AssistantUnavailable("OPENAI_API_KEY ausente")
    from openai import OpenAI
    return OpenAI(api_key=api_key)


class Assistant:
    def __init__(self, dispatcher, client=None, model: str = "gpt-4o-mini", max_rounds: int = 4, currency: str = "€"):
        self.dispatcher = dispatcher
        self._client = client
        self.model = model
        self.max_rounds = max(1, int(max_rounds))
        self.currency = currency

    @property
    def client(self):
        if self._client is None:
            self._client = _make_client()
        return self._client

    def _system_message(self) -> Dict[str, str]:
        now = datetime.now(timezone.utc).isoformat()
        return {"role": "system", "content": SYSTEM_INSTRUCTION.format(currency=self.currency, now=now)}

    def reply(self, text: str, history: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
        """
        Retorna {"reply": str, "actions": [resultado de cada comando]}.
        Erros do provedor sobem como exceção (a rota decide o status HTTP).
        """
        messages: List[Dict[str, Any]] = [self._system_message()]
        messages.extend(history or [])
        messages.append({"role": "user", "content": text})
        actions: List[Dict[str, Any]] = []

        for _ in range(self.max_rounds):
            resp = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                tools=openai_tools(),
            )
            choice = resp.choices[0].message if resp and resp.choices else None
            if choice is None:
                return {"reply": FALLBACK_REPLY, "actions": actions}

            calls = getattr(choice, "tool_calls", None) or []
            if not calls:
                return {"reply": (choice.content or "").strip() or FALLBACK_REPLY, "actions": actions}

            messages.append({
                "role": "assistant",
                "content": choice.content or "",
                "tool_calls": [
                    {"id": c.id, "type": "function",
                     "function": {"name": c.function.name, "arguments": c.function.arguments}}
                    for c in calls
                ],
            })
            for call in calls:
                try:
                    args = json.loads(call.function.arguments or "{}")
                except ValueError:
                    log.warning("[assistant] argumentos inválidos para %s", call.function.name)
                    args = {}
                result = self.dispatcher.execute(call.function.name, args)
                actions.append(result)
                messages.append({"role": "tool", "tool_call_id": call.id, "content": result["message"]})

        log.info("[assistant] limite de %s rodadas atingido", self.max_rounds)
        summary = " ".join(a["message"] for a in actions) or FALLBACK_REPLY
        return {"reply": summary, "actions": actions}
