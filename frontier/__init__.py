from frontier.models import CrawlRequest, RequestState, Outcome
from frontier.orchestrator import Frontier
