# docsight/ui/app.py
import os

import streamlit as st
import requests

API_BASE = os.getenv("DOCSIGHT_API_URL", "http://127.0.0.1:8000/api")

st.set_page_config(page_title="DocSight", layout="wide")

st.title("DocSight")
st.write("Upload documents, review their analysis, chat with them and explore how their concepts connect.")


def api_error(response) -> str:
    try:
        return response.json().get("detail", "Unknown error")
    except ValueError:
        return response.text or f"HTTP {response.status_code}"


def fetch_documents():
    response = requests.get(f"{API_BASE}/documents")
    if response.status_code != 200:
        raise RuntimeError(api_error(response))
    return response.json()["documents"]


def confidence_label(value: float) -> str:
    return f"{value:.0%}"


# ============================================================
# SIDEBAR: DOCUMENT LIBRARY
# ============================================================

st.sidebar.header("Document Library")

documents = []

try:
    documents = fetch_documents()

    st.sidebar.metric("Total Documents", len(documents))
    st.sidebar.metric("Awaiting Review", sum(1 for d in documents if d["status"] != "processed"))

    if documents:
        for doc in documents:
            with st.sidebar.expander(f"{doc['filename'][:40]}"):
                st.write(f"Status: {doc['status']}")
                st.write(f"Confidence: {confidence_label(doc['overall_confidence'])}")
                st.write(f"Chunks: {doc['chunks_indexed']}")
                st.write(f"Uploaded: {doc.get('upload_date', 'N/A')[:19]}")
                if doc["human_reviewed"]:
                    st.caption("Reviewed by a human")

                if st.button("Delete", key=f"delete_{doc['id']}"):
                    del_response = requests.delete(f"{API_BASE}/documents/{doc['id']}")
                    if del_response.status_code == 200:
                        st.success("Document deleted")
                        st.rerun()
                    else:
                        st.error(f"Failed to delete document: {api_error(del_response)}")
    else:
        st.sidebar.info("No documents uploaded yet")
except Exception as e:
    st.sidebar.error(f"API Error: {str(e)}")

doc_options = {f"{d['filename']} ({d['id']})": d["id"] for d in documents}

upload_tab, analysis_tab, chat_tab, validation_tab, graph_tab = st.tabs(
    ["Upload", "Analysis", "Chat", "Validation", "Concept Graph"]
)


# ============================================================
# UPLOAD
# ============================================================

with upload_tab:

    st.header("Upload Document")

    uploaded_file = st.file_uploader("Choose a file", type=["pdf", "txt", "md"])
    url = st.text_input("...or analyze a URL", placeholder="https://example.com/article")

    if st.button("Upload", type="primary"):
        with st.spinner("Extracting and analyzing..."):
            try:
                if uploaded_file:
                    files = {"file": (uploaded_file.name, uploaded_file.getvalue())}
                    response = requests.post(f"{API_BASE}/upload", files=files)
                elif url.strip():
                    response = requests.post(f"{API_BASE}/upload", data={"url": url.strip()})
                else:
                    response = None
                    st.warning("Choose a file or enter a URL")

                if response is not None:
                    if response.status_code == 200:
                        result = response.json()
                        st.success(f"Document {result['document']['id']} analyzed")
                        if result["requires_review"]:
                            st.warning("Some of the analysis has low confidence and needs review")
                        for step in result["next_steps"]:
                            st.write(f"- {step}")
                    else:
                        st.error(f"Upload failed: {api_error(response)}")
            except Exception as e:
                st.error(f"Error: {str(e)}")


# ============================================================
# ANALYSIS VIEW AND EDITOR
# ============================================================

with analysis_tab:

    st.header("Document Analysis")

    if not doc_options:
        st.info("Please upload a document first")
    else:
        label = st.selectbox("Document", list(doc_options.keys()), key="analysis_doc")
        document_id = doc_options[label]

        response = requests.get(f"{API_BASE}/documents/{document_id}")

        if response.status_code != 200:
            st.error(api_error(response))
        else:
            document = response.json()["document"]
            analysis = document["analysis"]

            col1, col2, col3 = st.columns(3)
            col1.metric("Overall Confidence", confidence_label(analysis["overall_confidence"]))
            col2.metric("Status", document["status"])
            col3.metric("Chunks Indexed", document["chunks_indexed"])

            with st.form("analysis_editor"):
                summary = st.text_area("Summary", analysis["summary"]["text"], height=150)
                st.caption(f"Confidence: {confidence_label(analysis['summary']['confidence'])}")

                topics = st.text_input("Topics (comma separated)", ", ".join(analysis["topics"]["items"]))
                st.caption(f"Confidence: {confidence_label(analysis['topics']['confidence'])}")

                entities = st.text_area(
                    "Entities (one per line, name:type)",
                    "\n".join(f"{e['name']}:{e['type']}" for e in analysis["entities"]["items"]),
                )
                st.caption(f"Confidence: {confidence_label(analysis['entities']['confidence'])}")

                sentiments = ["positive", "neutral", "negative"]
                current = analysis["sentiment"]["value"]
                sentiment = st.selectbox(
                    "Sentiment",
                    sentiments,
                    index=sentiments.index(current) if current in sentiments else 1,
                )

                if st.form_submit_button("Save Changes"):
                    analysis["summary"]["text"] = summary
                    analysis["topics"]["items"] = [t.strip() for t in topics.split(",") if t.strip()]
                    analysis["entities"]["items"] = [
                        {"name": name.strip(), "type": (kind or "entity").strip()}
                        for name, _, kind in (line.partition(":") for line in entities.splitlines())
                        if name.strip()
                    ]
                    analysis["sentiment"]["value"] = sentiment

                    put = requests.put(
                        f"{API_BASE}/documents/{document_id}",
                        json={"analysis": analysis, "human_reviewed": True},
                    )
                    if put.status_code == 200:
                        st.success("Analysis updated")
                    else:
                        st.error(f"Update failed: {api_error(put)}")

            if document["text_excerpts"]:
                with st.expander("Text excerpts"):
                    for excerpt in document["text_excerpts"]:
                        st.markdown(f"**{excerpt['label']}** ({excerpt['type']})")
                        st.write(excerpt["text"])


# ============================================================
# CHAT
# ============================================================

with chat_tab:

    st.header("Ask a Question")

    mode = st.radio("Ask about", ["This document", "All documents"], horizontal=True)

    selected_doc_id = None
    if mode == "This document":
        if doc_options:
            label = st.selectbox("Document", list(doc_options.keys()), key="chat_doc")
            selected_doc_id = doc_options[label]
        else:
            st.info("Please upload a document first")

    question = st.text_area("Enter your question", placeholder="What is the main topic of this document?")

    if st.button("Ask Question", type="primary"):
        if not question or len(question.strip()) < 3:
            st.warning("Question must be at least 3 characters")
        elif mode == "This document" and not selected_doc_id:
            st.warning("Select a document")
        else:
            with st.spinner("Thinking..."):
                try:
                    payload = {
                        "question": question.strip(),
                        "document_id": selected_doc_id,
                        "mode": "all" if mode == "All documents" else "single",
                    }
                    response = requests.post(f"{API_BASE}/ai/ask", json=payload)

                    if response.status_code == 200:
                        result = response.json()

                        if result["refused"]:
                            st.warning("Question Refused (Low Confidence)")
                            st.write(result["answer"])
                            with st.expander("Why was this refused?"):
                                st.write(f"Confidence Score: {result['confidence_score']:.2%}")
                                st.write(f"Reasoning: {result.get('reasoning') or 'Below confidence threshold'}")
                        else:
                            st.markdown(result["answer"])
                            col1, col2 = st.columns(2)
                            col1.metric("Confidence", f"{result['confidence_score']:.2%}")
                            col2.metric("Sources Used", result["sources_used"])
                    else:
                        st.error(f"Error: {api_error(response)}")
                except Exception as e:
                    st.error(f"Error: {str(e)}")


# ============================================================
# VALIDATION QUEUE
# ============================================================

with validation_tab:

    st.header("Validation Queue")

    try:
        response = requests.get(f"{API_BASE}/validation/pending")
        pending = response.json()["documents"] if response.status_code == 200 else []
    except Exception as e:
        pending = []
        st.error(f"API Error: {str(e)}")

    if not pending:
        st.info("Nothing waiting for review")

    for item in pending:
        with st.expander(f"{item['filename']} ({item['status']})"):
            if item["confidence_issues"]:
                st.write("Low confidence: " + ", ".join(item["confidence_issues"]))

            detail = requests.get(f"{API_BASE}/validation/document/{item['id']}").json()
            document = detail["document"]

            answers = {}
            for i, q in enumerate(document["questions"]):
                answers[q] = st.text_input(
                    q,
                    document["question_answers"].get(q, ""),
                    key=f"answer_{item['id']}_{i}",
                )

            comments = st.text_area("Comments", document["user_comments"], key=f"comments_{item['id']}")

            col1, col2 = st.columns(2)

            if col1.button("Submit Review", key=f"validate_{item['id']}"):
                put = requests.put(
                    f"{API_BASE}/validation/document/{item['id']}",
                    json={"question_answers": answers, "user_comments": comments},
                )
                if put.status_code == 200:
                    st.success("Review saved")
                    st.rerun()
                else:
                    st.error(api_error(put))

            if item["status"] == "user_validated" and col2.button("Approve", key=f"approve_{item['id']}"):
                with st.spinner("Indexing..."):
                    post = requests.post(f"{API_BASE}/validation/document/{item['id']}/approve")
                if post.status_code == 200:
                    st.success(f"Indexed {post.json()['chunks_indexed']} chunks")
                    st.rerun()
                else:
                    st.error(api_error(post))


# ============================================================
# CONCEPT GRAPH AND REASONING CHAIN
# ============================================================

with graph_tab:

    st.header("Concept Graph")

    if not doc_options:
        st.info("Please upload a document first")
    else:
        label = st.selectbox("Document", list(doc_options.keys()), key="graph_doc")
        document_id = doc_options[label]

        if st.button("Generate Concept Graph"):
            with st.spinner("Extracting concepts..."):
                response = requests.post(f"{API_BASE}/ai/mind-map", json={"document_id": document_id})
            if response.status_code == 200:
                st.success("Concept graph generated")
            else:
                st.error(api_error(response))

        document = requests.get(f"{API_BASE}/documents/{document_id}").json().get("document", {})
        graph = document.get("concept_graph")

        if not graph or not graph["nodes"]:
            st.info("No concept graph yet")
        else:
            dot = ["graph concepts {"]
            for node in graph["nodes"]:
                dot.append(f'  "{node["id"]}";')
            for edge in graph["edges"]:
                dot.append(f'  "{edge["source"]}" -- "{edge["target"]}" [label="{edge["type"]}"];')
            dot.append("}")
            st.graphviz_chart("\n".join(dot))

            st.subheader("Reasoning Chain")

            names = [node["id"] for node in graph["nodes"]]

            col1, col2 = st.columns(2)
            source = col1.selectbox("From", names, key="chain_source")
            target = col2.selectbox("To", names, index=len(names) - 1, key="chain_target")

            if st.button("Find Path"):
                response = requests.post(
                    f"{API_BASE}/ai/reasoning-chain",
                    json={"source": source, "target": target, "document_id": document_id},
                )
                if response.status_code == 200:
                    result = response.json()
                    if result["found"]:
                        st.success(result["message"])
                        for step in result["steps"]:
                            st.write(f"{step['source']} --[{step['relationship']}]--> {step['target']}")
                    else:
                        st.warning(result["message"])
                else:
                    st.error(api_error(response))

st.divider()
st.caption("Confidence-scored analysis, human validation, similarity-based refusal")
