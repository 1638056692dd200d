import os

from src.web.map_widget import PageDocument, SdkLoader

STATIC_DIR = os.path.join(os.path.dirname(__file__), "static")
SDK_PLACEHOLDER = "<!-- map-sdk -->"


def load_template():
    with open(os.path.join(STATIC_DIR, "index.html"), encoding="utf-8") as f:
        return f.read()


def render_index_page(js_api_key, document=None):
    document = document or PageDocument()
    SdkLoader(js_api_key).load(document)
    return load_template().replace(SDK_PLACEHOLDER, document.render_head())
