from extraction.models import PageRecord, Link, Image
from extraction.extractor import PageExtractor
