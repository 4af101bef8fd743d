"""
Standalone HTML mind-map page.

The page embeds the structured markdown verbatim in a ``text/template``
script block that markmap-autoloader turns into an interactive SVG in the
browser; nothing here computes a layout.
"""

import html
from string import Template

MARKMAP_AUTOLOADER_URL = "https://cdn.jsdelivr.net/npm/markmap-autoloader@latest"

_PAGE = Template(
    """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8" />
  <meta name="viewport" content="width=device-width,initial-scale=1" />
  <title>$title</title>
  <style>
    body {
      margin: 0;
      padding: 0;
      font-family: 'Inter', system-ui, -apple-system, Segoe UI, Roboto, Ubuntu, 'Helvetica Neue', Arial, sans-serif;
      background: linear-gradient(135deg, #667eea 0%, #764ba2 100%);
      overflow: hidden;
      height: 100vh;
    }
    .container { display: flex; flex-direction: column; height: 100vh; }
    .header {
      background: rgba(255,255,255,.95);
      padding: 14px 18px;
      text-align: center;
      box-shadow: 0 2px 10px rgba(0,0,0,.1);
    }
    .header h1 { margin: 0; color: #4F46E5; font-size: 1.6rem; font-weight: 700; }
    .mindmap-container {
      flex: 1;
      position: relative;
      background: #fff;
      margin: 0 16px 16px;
      border-radius: 14px;
      box-shadow: 0 10px 30px rgba(0,0,0,.2);
      overflow: hidden;
    }
    #markmap { width: 100%; height: 100%; }
    #markmap svg { width: 100% !important; height: 100% !important; display: block; }
    .controls { position: absolute; bottom: 16px; left: 16px; z-index: 2; }
    .btn {
      background: #4F46E5;
      color: #fff;
      border: none;
      padding: 10px 14px;
      border-radius: 999px;
      cursor: pointer;
      font-weight: 600;
      font-size: 14px;
    }
  </style>
  <script src="$autoloader"></script>
</head>
<body>
  <div class="container">
    <div class="header"><h1>🗺️ $title</h1></div>
    <div class="mindmap-container">
      <div id="markmap" class="markmap">
        <script type="text/template">
$markdown
        </script>
      </div>
      <div class="controls">
        <button class="btn" onclick="downloadSVG()">⬇️ Download SVG</button>
      </div>
    </div>
  </div>
  <script>
    let attempts = 0;
    function ensureFit() {
      const inst = window.markmap && window.markmap.getGlobalInstance && window.markmap.getGlobalInstance();
      if (inst) {
        window.mmInstance = inst;
        setTimeout(() => inst.fit(), 100);
        setTimeout(() => inst.fit(), 500);
      } else if (++attempts < 12) {
        setTimeout(ensureFit, 250);
      }
    }
    ensureFit();
    window.addEventListener('resize', () => {
      if (window.mmInstance) setTimeout(() => window.mmInstance.fit(), 150);
    });

    function downloadSVG() {
      const svg = document.querySelector('#markmap svg');
      if (!svg) { alert('Mind map not ready yet.'); return; }
      if (window.mmInstance) window.mmInstance.fit();
      const rect = svg.getBoundingClientRect();
      const width = Math.max(800, rect.width || 1200);
      const height = Math.max(600, rect.height || 800);
      let data = new XMLSerializer().serializeToString(svg);
      if (!/xmlns=/.test(data)) data = data.replace('<svg', '<svg xmlns="http://www.w3.org/2000/svg"');
      if (!/viewBox=/.test(data)) data = data.replace(/<svg([^>]*)>/, '<svg$$1 viewBox="0 0 ' + width + ' ' + height + '">');
      const blob = new Blob([data], { type: 'image/svg+xml;charset=utf-8' });
      const url = URL.createObjectURL(blob);
      const a = document.createElement('a');
      a.href = url;
      a.download = 'mindmap.svg';
      document.body.appendChild(a);
      a.click();
      document.body.removeChild(a);
      URL.revokeObjectURL(url);
    }
  </script>
</body>
</html>
"""
)


def render_mindmap_html(markdown: str, title: str = "Mind Map") -> str:
    """
    Render the mind-map page for a structured markdown payload.

    The markdown is embedded verbatim; only a literal ``</script`` is broken
    up so it cannot terminate the template block early.
    """
    payload = markdown.replace("</script", "<\\/script")
    return _PAGE.substitute(title=html.escape(title), autoloader=MARKMAP_AUTOLOADER_URL, markdown=payload)
