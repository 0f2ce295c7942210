"""
Test data builders shared by the test modules.
"""

from typing import List

from telescope.schemas import Document


def make_documents(hosts: List[str], per_host: int, body_size: int = 40) -> List[Document]:
    """Documents interleaved across hosts: h1/0, h2/0, ..., h1/1, h2/1, ..."""
    documents = []
    for i in range(per_host):
        for host in hosts:
            documents.append(Document(
                title=f"{host} page {i}",
                source_url=f"https://{host}/page-{i}",
                body=f"Body of {host} page {i}. " + "word " * body_size,
            ))
    return documents
