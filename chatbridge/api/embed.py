"""
Public website widget: the script embed snippets load, and the chat endpoint it calls.

The widget posts ``{agentId, userId, message}``; the agent must have an
``html-css`` plugin config owned by that user before it will answer.
"""
import logging

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from chatbridge.config.settings import get_settings
from chatbridge.errors import ForbiddenError, NotFoundError, ValidationError
from chatbridge.persistence.database import get_db
from chatbridge.persistence.models import Agent
from chatbridge.schemas.chat import EmbedChatRequest, EmbedChatResponse
from chatbridge.services.llm_service import get_llm_service
from chatbridge.services.plugin_config_service import PluginConfigService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/embed", tags=["embed"])

WIDGET_PLUGIN_ID = "html-css"
SCRIPT_PATH = "/api/embed/chatbot.js"

# Drains both snippet loaders: the html-css `chatbot(...)` stub and the
# WordPress `ChatbotWidgetQueue`.
WIDGET_SCRIPT = """(function () {
  var baseUrl = '__BASE_URL__';
  if (!baseUrl) {
    var scripts = document.getElementsByTagName('script');
    for (var i = 0; i < scripts.length; i++) {
      var src = scripts[i].src || '';
      if (src.indexOf('__SCRIPT_PATH__') !== -1) {
        baseUrl = src.split('__SCRIPT_PATH__')[0];
        break;
      }
    }
  }

  var config = null;
  var panel = null;
  var log = null;

  function append(text, fromUser) {
    var line = document.createElement('div');
    line.textContent = text;
    line.style.margin = '6px 0';
    line.style.textAlign = fromUser ? 'right' : 'left';
    log.appendChild(line);
    log.scrollTop = log.scrollHeight;
  }

  function send(message) {
    append(message, true);
    fetch(baseUrl + '/api/embed/chat', {
      method: 'POST',
      headers: {'Content-Type': 'application/json'},
      body: JSON.stringify({agentId: config.agentId, userId: config.userId, message: message})
    })
      .then(function (resp) { return resp.json(); })
      .then(function (data) { append(data.response || data.error || 'No response', false); })
      .catch(function () { append('Sorry, the assistant is unavailable.', false); });
  }

  function build() {
    var root = document.createElement('div');
    root.id = 'chatbot-widget-container';
    root.style.position = 'fixed';
    root.style.zIndex = '999999';
    var pos = (config.position || 'bottom-right').split('-');
    root.style[pos[0]] = '20px';
    root.style[pos[1]] = '20px';

    panel = document.createElement('div');
    panel.style.display = 'none';
    panel.style.width = '320px';
    panel.style.background = '#fff';
    panel.style.borderRadius = '8px';
    panel.style.boxShadow = '0 4px 12px rgba(0,0,0,0.2)';
    panel.style.marginBottom = '10px';

    var header = document.createElement('div');
    header.textContent = config.title || 'Chat with us';
    header.style.background = config.primaryColor || '#0084ff';
    header.style.color = '#fff';
    header.style.padding = '10px';
    header.style.borderRadius = '8px 8px 0 0';

    log = document.createElement('div');
    log.style.height = '280px';
    log.style.overflowY = 'auto';
    log.style.padding = '10px';

    var input = document.createElement('input');
    input.placeholder = 'Type a message...';
    input.style.width = '100%';
    input.style.boxSizing = 'border-box';
    input.style.padding = '8px';
    input.onkeydown = function (e) {
      if (e.key === 'Enter' && input.value.trim()) {
        send(input.value.trim());
        input.value = '';
      }
    };

    panel.appendChild(header);
    panel.appendChild(log);
    panel.appendChild(input);

    var button = document.createElement('div');
    button.style.width = '60px';
    button.style.height = '60px';
    button.style.borderRadius = '50%';
    button.style.cursor = 'pointer';
    button.style.background = config.primaryColor || '#0084ff';
    button.onclick = function () {
      panel.style.display = panel.style.display === 'none' ? 'block' : 'none';
    };

    root.appendChild(panel);
    root.appendChild(button);
    document.body.appendChild(root);
    if (config.autoOpen) {
      setTimeout(function () { panel.style.display = 'block'; }, 1000);
    }
  }

  function init(options) {
    if (config) return;
    config = options || {};
    if (config.showOnMobile === false && window.innerWidth < 768) return;
    if (document.body) build();
    else document.addEventListener('DOMContentLoaded', build);
  }

  function call(method, options) {
    if (method === 'init') init(options);
  }

  var stub = window.chatbot;
  var pending = (stub && stub.q) || [];
  var queued = window.ChatbotWidgetQueue || [];
  window.chatbot = call;
  window.ChatbotWidgetQueue = {push: function (args) { call(args[0], args[1]); }};
  for (var j = 0; j < pending.length; j++) call(pending[j][0], pending[j][1]);
  for (var k = 0; k < queued.length; k++) call(queued[k][0], queued[k][1]);
})();
"""


@router.get("/chatbot.js")
def widget_script() -> Response:
    body = WIDGET_SCRIPT.replace("__BASE_URL__", get_settings().app_public_url)
    body = body.replace("__SCRIPT_PATH__", SCRIPT_PATH)
    return Response(
        content=body,
        media_type="application/javascript",
        headers={"Cache-Control": "public, max-age=3600"},
    )


@router.post("/chat", response_model=EmbedChatResponse, response_model_by_alias=True)
def embed_chat(payload: EmbedChatRequest, db: Session = Depends(get_db)) -> EmbedChatResponse:
    if payload.agent_id is None or not payload.user_id or not payload.message:
        raise ValidationError("Missing required parameters")

    agent = db.get(Agent, payload.agent_id)
    if agent is None:
        raise NotFoundError("Agent not found")

    config = PluginConfigService.get_plugin_config_by_plugin_id(db, WIDGET_PLUGIN_ID, payload.user_id, agent.id)
    if config is None:
        raise ForbiddenError("Unauthorized")

    logger.info("Widget chat for agent %s", agent.id, extra={"user_id": payload.user_id, "plugin_id": WIDGET_PLUGIN_ID})
    result = get_llm_service().generate_chat_completion(
        [{"role": "user", "content": payload.message}],
        system_prompt=agent.system_prompt,
    )
    return EmbedChatResponse(
        response=result["response"],
        model=result["model"],
        agent_name=agent.chatbot_name or agent.name,
    )
