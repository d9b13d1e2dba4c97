"""
Server-rendered HTML for the form, result and not-found pages.

Markup is deliberately plain; every user-supplied or generated string goes
through `html.escape`. The journal prompt block runs a tiny client-side state
machine (pending, generating, answered, declined) against /api/answer-prompt
and /api/reject-prompt.
"""

import json
from html import escape
from typing import Iterable

from pattern_mirror.core.settings import settings
from pattern_mirror.schemas import StoredReading

STYLE = """
  body { font-family: Arial, sans-serif; margin: 0 auto; max-width: 720px; padding: 20px; color: #222; }
  input, textarea, button { padding: 8px; font-size: 15px; }
  label { display: block; margin-top: 12px; }
  .card { padding: 16px; border: 1px solid #ddd; margin: 12px 0; border-radius: 8px; }
  .muted { color: #666; font-size: 13px; }
  .error { color: #a00; }
"""


def _page(title: str, body: str) -> str:
    return f"""<!doctype html>
<html>
<head>
  <meta charset="utf-8"/>
  <title>{escape(title)}</title>
  <style>{STYLE}</style>
</head>
<body>
{body}
</body>
</html>
"""


def _list(items: Iterable[str], ordered: bool = False) -> str:
    tag = "ol" if ordered else "ul"
    rows = "".join(f"<li>{escape(item)}</li>" for item in items)
    return f"<{tag}>{rows}</{tag}>"


def render_home() -> str:
    api = settings.API_PREFIX
    body = f"""
  <h1>{escape(settings.PROJECT_NAME)}</h1>
  <p class="muted">A reflection tool. Patterns, not predictions.</p>
  <form id="reading-form">
    <label>Name <input name="name" maxlength="100" required/></label>
    <label>Birth date <input name="birthDate" type="date" required/></label>
    <label>Birth time (optional) <input name="birthTime" type="time"/></label>
    <label>Birth city <input name="birthCity" maxlength="100" required/></label>
    <label>What's on your mind? (optional) <textarea name="focusArea" maxlength="200"></textarea></label>
    <p><button type="submit" id="submit">Generate reading</button></p>
    <p id="form-error" class="error"></p>
  </form>
<script>
document.getElementById('reading-form').addEventListener('submit', async (ev) => {{
  ev.preventDefault();
  const button = document.getElementById('submit');
  const errorBox = document.getElementById('form-error');
  button.disabled = true; button.textContent = 'Generating...'; errorBox.textContent = '';
  const payload = Object.fromEntries(new FormData(ev.target).entries());
  try {{
    const res = await fetch('{api}/generate-reading', {{
      method: 'POST', headers: {{'Content-Type': 'application/json'}}, body: JSON.stringify(payload)
    }});
    const data = await res.json();
    if (!res.ok) throw new Error(data.details || data.error || 'Failed to generate reading');
    window.location.href = '/result?rid=' + encodeURIComponent(data.readingId);
  }} catch (err) {{
    errorBox.textContent = err.message;
    button.disabled = false; button.textContent = 'Generate reading';
  }}
}});
</script>
"""
    return _page(settings.PROJECT_NAME, body)


def render_not_found() -> str:
    body = """
  <h1>Reading not found</h1>
  <p>This reading does not exist or the link is incomplete.</p>
  <p><a href="/">Generate a new reading</a></p>
"""
    return _page("Reading not found", body)


def render_result(stored: StoredReading) -> str:
    reading = stored.reading
    api = settings.API_PREFIX
    # Embedded in a <script> block, so "</" must not appear literally
    context = json.dumps({
        "readingId": stored.reading_id,
        "journalPrompt": reading.journal_prompt,
        "userInputs": stored.inputs.to_json(),
    }).replace("</", "<\\/")
    body = f"""
  <h1>{escape(reading.headline)}</h1>
  <p><button id="regenerate">Regenerate</button> <span id="regenerate-error" class="error"></span></p>
  <div class="card"><p>{escape(reading.core_theme)}</p></div>
  <div class="card"><h2>What's Working</h2>{_list(reading.strengths)}</div>
  <div class="card"><h2>Things to Watch</h2>{_list(reading.watch_outs)}</div>
  <div class="card"><h2>Next 7 Days</h2><p class="muted">Focus areas to consider</p>{_list(reading.next_7_days, ordered=True)}</div>
  <div class="card" id="journal">
    <h2>Something to Think About</h2>
    <p><em>{escape(reading.journal_prompt)}</em></p>
    <p id="journal-controls">
      <button id="journal-accept">Yes, explore this</button>
      <button id="journal-reject">Not now</button>
    </p>
    <p id="journal-error" class="error"></p>
    <div id="journal-answer"></div>
  </div>
  <p class="muted">{escape(reading.disclaimer)}</p>
  <p><a href="/">Generate another reading</a></p>
<script>
const ctx = {context};
const controls = document.getElementById('journal-controls');
const acceptBtn = document.getElementById('journal-accept');
const errorBox = document.getElementById('journal-error');
const answerBox = document.getElementById('journal-answer');

async function postJson(path, body) {{
  const res = await fetch('{api}' + path, {{
    method: 'POST', headers: {{'Content-Type': 'application/json'}}, body: JSON.stringify(body)
  }});
  const data = await res.json();
  if (!res.ok) throw new Error(data.details || data.error || 'Request failed');
  return data;
}}

acceptBtn.addEventListener('click', async () => {{
  // pending -> generating
  acceptBtn.disabled = true; acceptBtn.textContent = 'Thinking...'; errorBox.textContent = '';
  try {{
    const data = await postJson('/answer-prompt', ctx);
    // generating -> answered
    controls.remove();
    const heading = document.createElement('h3');
    heading.textContent = 'Reflection';
    const text = document.createElement('p');
    text.style.whiteSpace = 'pre-line';
    text.textContent = data.answer;
    answerBox.append(heading, text);
  }} catch (err) {{
    // generating -> pending
    errorBox.textContent = err.message;
    acceptBtn.disabled = false; acceptBtn.textContent = 'Yes, explore this';
  }}
}});

document.getElementById('journal-reject').addEventListener('click', () => {{
  // pending -> declined
  controls.remove();
  answerBox.innerHTML = '<p class="muted">You can always come back to this question later.</p>';
  postJson('/reject-prompt', {{readingId: ctx.readingId, journalPrompt: ctx.journalPrompt}}).catch(() => {{}});
}});

document.getElementById('regenerate').addEventListener('click', async (ev) => {{
  ev.target.disabled = true; ev.target.textContent = 'Regenerating...';
  try {{
    const data = await postJson('/readings/' + encodeURIComponent(ctx.readingId) + '/regenerate', {{}});
    window.location.href = '/result?rid=' + encodeURIComponent(data.readingId);
  }} catch (err) {{
    document.getElementById('regenerate-error').textContent = 'Failed to regenerate reading. Please try again.';
    ev.target.disabled = false; ev.target.textContent = 'Regenerate';
  }}
}});
</script>
"""
    return _page(reading.headline, body)
