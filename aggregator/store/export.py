import csv
import io

from aggregator.store.job_store import JobStore

HEADERS = ["ID", "Title", "Company", "Location", "URL", "Score", "Category", "Salary", "Reasoning"]


def to_csv(store: JobStore) -> str:
    """
    Semicolon separated, UTF-8 BOM prefixed so spreadsheet apps pick the
    right encoding.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, delimiter=";", quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(HEADERS)
    for posting in store.all_postings():
        writer.writerow(
            [
                posting.id,
                posting.title,
                posting.company,
                posting.location,
                posting.url,
                posting.score,
                posting.category.value,
                posting.salary_range or "",
                posting.reasoning,
            ]
        )
    return "\ufeff" + buffer.getvalue()
