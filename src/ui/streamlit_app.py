# src/ui/streamlit_app.py

import random
import streamlit as st
import streamlit.components.v1 as components
import requests

from pyvis.network import Network

BACKEND_DEFAULT = "http://localhost:8000"
OLLAMA_DEFAULT = "http://127.0.0.1:11434"
DEFAULT_CHUNK_SIZE = 1024
DEFAULT_TEMPERATURE = 0.5
COLORS = ["#FF5733", "#33FF57", "#3357FF", "#F1C40F", "#8E44AD", "#E74C3C", "#3498DB"]


def fetch_models(backend_url: str, ollama_url: str):
    resp = requests.get(
        f"{backend_url}/models",
        params={"base_url": ollama_url},
        timeout=30,
    )
    resp.raise_for_status()
    return resp.json()


def run_extraction(backend_url: str, payload: dict):
    resp = requests.post(f"{backend_url}/extract", json=payload, timeout=3600)
    if resp.status_code in (400, 409):
        raise ValueError(resp.json().get("detail", resp.text))
    resp.raise_for_status()
    return resp.json()


def fetch_csv(backend_url: str, rows: list):
    resp = requests.post(f"{backend_url}/export", json={"rows": rows}, timeout=60)
    resp.raise_for_status()
    disposition = resp.headers.get("Content-Disposition", "")
    filename = disposition.split("filename=")[-1].strip('"') or "graph-data.csv"
    return filename, resp.text


def render_graph(graph: dict):
    nodes = graph.get("nodes") or []
    edges = graph.get("edges") or []

    if not nodes and not edges:
        st.info("No graph yet. Run an extraction first.")
        return

    net = Network(
        height="600px",
        width="100%",
        bgcolor="#ffffff",
        font_color="#0b1220",
        directed=True,
    )
    net.barnes_hut()

    for node in nodes:
        node_id = node.get("id")
        if not node_id:
            continue
        net.add_node(
            node_id,
            label=node.get("label") or node_id,
            color=random.choice(COLORS),
            shape="dot",
            size=14,
        )

    for edge in edges:
        src = edge.get("source")
        tgt = edge.get("target")
        if not src or not tgt:
            continue
        net.add_edge(
            src,
            tgt,
            label=edge.get("label", ""),
            title=edge.get("label", ""),
            color=random.choice(COLORS),
            width=1 + 2 * random.random(),
            arrows="to",
        )

    net.toggle_physics(True)

    html = net.generate_html(notebook=False, local=True)
    components.html(html, height=640, scrolling=True)


def params_panel(backend_url: str):
    with st.sidebar:
        st.header("Parameters")
        ollama_url = st.text_input("Ollama URL", value=OLLAMA_DEFAULT)
        models = []
        try:
            models = [m["name"] for m in fetch_models(backend_url, ollama_url)]
        except Exception as e:
            st.warning(f"Error fetching models from {ollama_url}: {e}")
        if not models:
            st.caption("No models found. Ensure Ollama is running and models are installed.")
        model = st.selectbox("Model", options=models, index=0 if models else None)
        temperature = st.slider("Temperature", 0.0, 1.0, DEFAULT_TEMPERATURE, 0.05)
        chunk_size = st.number_input(
            "Chunk size (characters)", min_value=1, value=DEFAULT_CHUNK_SIZE, step=128
        )
        with st.expander("Prompts"):
            system_prompt = st.text_area("System prompt", value="", height=150,
                                         help="Leave empty to use the server default.")
            user_prompt_template = st.text_area(
                "Instruction template", value="", height=100,
                help="Must contain {user_text}. Leave empty to use the server default.",
            )
    return {
        "base_url": ollama_url,
        "model": model,
        "temperature": temperature,
        "chunk_size": int(chunk_size),
        "system_prompt": system_prompt or None,
        "user_prompt_template": user_prompt_template or None,
    }


def main():
    st.set_page_config(page_title="Text to Graph", layout="wide")
    st.title("Text to Graph")
    st.caption("Local LLM relationship extraction → graph + table → CSV export.")

    backend_url = st.text_input("Backend URL", value=BACKEND_DEFAULT)
    params = params_panel(backend_url)

    if "result" not in st.session_state:
        st.session_state.result = None

    text = st.text_area("Input text", height=200, placeholder="Enter your text here...")

    if st.button("Generate Graph"):
        with st.spinner("Extracting relationships segment by segment..."):
            try:
                st.session_state.result = run_extraction(backend_url, {"text": text, **params})
            except Exception as e:
                st.error(f"Error: {e}")

    result = st.session_state.result
    if not result:
        return

    if result["status"] == "failed":
        st.error(f"Run failed: {result['error']}. Showing partial results.")
    else:
        st.success(f"{result['num_nodes']} nodes, {result['num_edges']} edges.")

    st.subheader("Graph")
    render_graph(result.get("graph") or {})

    st.subheader("Connections")
    table = result.get("table") or []
    st.dataframe(table, use_container_width=True, hide_index=True)
    if table:
        try:
            filename, content = fetch_csv(backend_url, table)
            st.download_button("Export CSV", data=content, file_name=filename, mime="text/csv")
        except Exception as e:
            st.error(f"Error: {e}")

    with st.expander("Logs", expanded=result["status"] != "completed"):
        st.code("\n".join(result.get("logs") or []), language=None)


if __name__ == "__main__":
    main()
