import logging

from fastapi import APIRouter, Request

from app.models.crawl import CrawlAck, CrawlParams

logger = logging.getLogger(__name__)

router = APIRouter(tags=["crawl"])


@router.post("/crawl", response_model=CrawlAck)
def api_start_crawl(params: CrawlParams, request: Request):
    """Accept a crawl job; the mock acknowledges with the targets it was given."""
    request.app.state.submissions.append(params)
    logger.info("Accepted crawl of %d target(s)", len(params.targets))
    return CrawlAck(items=list(params.targets))
