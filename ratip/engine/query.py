"""Single-flight natural-language query channel.

Only one query may be in flight per session.  Submissions with blank text or
while a query is processing are rejected without touching state or issuing a
request.  Whatever happens to the request, ``is_processing`` is cleared when
``submit`` returns or is cancelled.
"""

import logging
import time
from datetime import UTC, datetime

from ratip.client.backend import ApplicationError, BackendClient, ConnectivityError
from ratip.engine.state import StateStore
from ratip.models import QueryExchange, QueryOutcome
from ratip.observability.metrics import QUERIES_IN_PROGRESS, QUERIES_TOTAL, QUERY_DURATION

logger = logging.getLogger(__name__)

GENERIC_QUERY_FAILURE = "Failed to process query"

EXAMPLE_QUERIES: tuple[str, ...] = (
    "Which services experienced throttling errors this week?",
    "List the top 5 high-impact alarms in the last 24 hours",
    "Correlate Lambda cold starts with API latency spikes",
)


def connection_error_message(base_url: str, detail: str) -> str:
    """Diagnostic shown when the query could not reach the backend at all."""
    return (
        "Backend Connection Error\n\n"
        "The RATIP backend is not available. Please ensure:\n\n"
        f"1. The backend service is running on {base_url}\n"
        "2. The health check endpoint is accessible\n"
        "3. No proxy or firewall is blocking the connection\n\n"
        f"Error: {detail}"
    )


def application_error_message(error: str | None) -> str:
    return f"Error: {error or GENERIC_QUERY_FAILURE}"


class QueryChannel:
    def __init__(self, client: BackendClient, store: StateStore) -> None:
        self._client = client
        self._store = store

    @property
    def exchange(self) -> QueryExchange:
        return self._store.snapshot.query

    @property
    def is_processing(self) -> bool:
        return self.exchange.is_processing

    def _reject(self, reason: str) -> QueryExchange:
        QUERIES_TOTAL.labels(status="rejected").inc()
        logger.info("Query rejected: %s", reason)
        return self.exchange

    async def submit(self, query_text: str) -> QueryExchange:
        """Send ``query_text`` to the backend and return the settled exchange.

        Rejected submissions return the current exchange unchanged.
        """
        if not query_text.strip():
            return self._reject("empty query")
        if self.is_processing:
            return self._reject("another query is still processing")

        # Claim the slot before the first await so a second submit sees it busy
        self._store.set_query(QueryExchange(query_text=query_text, is_processing=True, outcome=QueryOutcome.PENDING))
        QUERIES_IN_PROGRESS.inc()
        start = time.monotonic()

        response_text = ""
        outcome = QueryOutcome.NONE
        try:
            response_text = await self._client.post_query(query_text)
            outcome = QueryOutcome.ANSWERED
        except ApplicationError as e:
            logger.warning("Backend rejected query with HTTP %d: %s", e.status_code, e.error)
            response_text = application_error_message(e.error)
            outcome = QueryOutcome.APPLICATION_ERROR
        except ConnectivityError as e:
            logger.warning("Query could not reach backend: %s", e)
            response_text = connection_error_message(self._client.base_url, e.detail)
            outcome = QueryOutcome.CONNECTIVITY_ERROR
        except Exception as e:
            logger.exception("Unexpected error while submitting query")
            response_text = connection_error_message(self._client.base_url, str(e) or type(e).__name__)
            outcome = QueryOutcome.CONNECTIVITY_ERROR
        finally:
            QUERIES_IN_PROGRESS.dec()
            QUERY_DURATION.observe(time.monotonic() - start)
            self._store.set_query(
                QueryExchange(
                    query_text=query_text,
                    is_processing=False,
                    response_text=response_text,
                    outcome=outcome,
                    completed_at=datetime.now(UTC),
                )
            )

        QUERIES_TOTAL.labels(status=outcome.value).inc()
        return self.exchange
