from __future__ import annotations

from html import escape

from fastapi.responses import HTMLResponse

from validation_tool import __version__
from validation_tool.context import ServiceContext
from validation_tool.engine import ENGINE_NAME

_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{title}</title>
<style>
body {{ font-family: sans-serif; margin: 2rem; max-width: 60rem; }}
textarea {{ width: 100%; height: 16rem; font-family: monospace; }}
pre {{ background: #f4f4f4; padding: 1rem; overflow: auto; }}
.accept {{ color: #1a7f37; }} .reject {{ color: #cf222e; }}
</style>
</head>
<body>
<h1>{title}</h1>
<p>Version {version}. Available scenarios:</p>
<ul>{scenarios}</ul>
<form id="check-form">
<p><input type="file" id="file" accept=".xml,application/xml,text/xml"></p>
<p><textarea id="document" placeholder="Paste an XML document"></textarea></p>
<p><button type="submit">Check</button></p>
</form>
<h2 id="status"></h2>
<pre id="report"></pre>
<script>
document.getElementById("file").addEventListener("change", async (event) => {{
  const file = event.target.files[0];
  if (file) {{ document.getElementById("document").value = await file.text(); }}
}});
document.getElementById("check-form").addEventListener("submit", async (event) => {{
  event.preventDefault();
  const response = await fetch("/", {{
    method: "POST",
    headers: {{ "Content-Type": "application/xml" }},
    body: document.getElementById("document").value,
  }});
  const status = document.getElementById("status");
  status.textContent = response.status === 200 ? "Accepted" : "Rejected (" + response.status + ")";
  status.className = response.status === 200 ? "accept" : "reject";
  document.getElementById("report").textContent = await response.text();
}});
</script>
</body>
</html>
"""


def render_gui(context: ServiceContext) -> HTMLResponse:
    scenarios = "".join(
        f"<li>{escape(name)} <small>({escape(configuration.name)})</small></li>"
        for configuration in context.configurations
        for name in configuration.scenario_names
    )
    page = _PAGE.format(title=escape(ENGINE_NAME), version=escape(__version__), scenarios=scenarios)
    return HTMLResponse(content=page)


__all__ = ["render_gui"]
