from .git_fetcher import Fetcher as Fetcher
from .git_fetcher import GitFetcher as GitFetcher
from .git_fetcher import extract_repo_name as extract_repo_name
from .repo_cache import RepoCache as RepoCache
