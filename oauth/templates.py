"""HTML templates for the OAuth consent step.

The consent form posts the authorization request back to
/oauth/approve verbatim, so no server-side state exists until the user
decides.
"""

from html import escape

from oauth.service import ConsentPrompt

CONSENT_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>Workspace MCP - Grant access?</title>
  <style>
    body {{ margin: 0; padding: 48px 16px; background: #eef1f5; color: #1f2933;
            font: 15px/1.5 system-ui, sans-serif; }}
    main {{ max-width: 420px; margin: 0 auto; background: #fff; border-radius: 12px;
            padding: 32px; box-shadow: 0 2px 12px rgba(31, 41, 51, 0.12); }}
    h2 {{ margin-top: 0; font-size: 20px; }}
    .client {{ border-left: 4px solid #3b82f6; padding: 8px 12px; margin: 16px 0; }}
    .client strong {{ display: block; }}
    .client small {{ color: #616e7c; overflow-wrap: anywhere; }}
    ul.scopes {{ list-style: none; padding: 0; margin: 0 0 24px; }}
    ul.scopes li {{ padding: 6px 0; border-bottom: 1px solid #e4e7eb; }}
    .actions {{ display: grid; grid-template-columns: 1fr 1fr; gap: 10px; }}
    .actions button {{ padding: 12px; border-radius: 6px; font-size: 15px; cursor: pointer; }}
    button.allow {{ background: #3b82f6; border: 0; color: #fff; }}
    button.deny {{ background: transparent; border: 1px solid #9aa5b1; color: #323f4b; }}
  </style>
</head>
<body>
  <main>
    <h2>Grant access to this workspace?</h2>
    <div class="client">
      <strong>{client_name}</strong>
      <small>will be sent back to {redirect_uri}</small>
    </div>
    <p>Requested permissions:</p>
    <ul class="scopes">
{scopes}
    </ul>
    <form method="POST" action="/oauth/approve">
      <input type="hidden" name="client_id" value="{client_id}">
      <input type="hidden" name="redirect_uri" value="{redirect_uri}">
      <input type="hidden" name="scope" value="{scope}">
      <input type="hidden" name="state" value="{state}">
      <input type="hidden" name="code_challenge" value="{code_challenge}">
      <input type="hidden" name="code_challenge_method" value="{code_challenge_method}">
      <div class="actions">
        <button type="submit" name="approved" value="false" class="deny">Deny</button>
        <button type="submit" name="approved" value="true" class="allow">Allow</button>
      </div>
    </form>
  </main>
</body>
</html>
"""

SCOPE_ITEM = """      <li>{name}</li>"""


def render_consent_page(prompt: ConsentPrompt) -> str:
    """Render the consent form for a validated authorization request."""
    scope_names = prompt.scope.split() or ["Basic scope"]
    scopes = "\n".join(SCOPE_ITEM.format(name=escape(name)) for name in scope_names)

    return CONSENT_PAGE.format(
        client_name=escape(prompt.client.client_name or prompt.client.client_id),
        client_id=escape(prompt.client.client_id),
        redirect_uri=escape(prompt.redirect_uri),
        scope=escape(prompt.scope),
        state=escape(prompt.state),
        code_challenge=escape(prompt.code_challenge),
        code_challenge_method=escape(prompt.code_challenge_method),
        scopes=scopes,
    )
