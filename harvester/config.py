from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    github_token: str = ""
    github_api_url: str = "https://api.github.com/graphql"
    owner: str = "w3c"  # Organization harvested when none is given on the command line
    repository_page_size: int = 10  # Repositories per page; each carries several blobs
    label_page_size: int = 30  # Labels fetched inline with each repository
    label_fetch_page_size: int = 100  # GitHub GraphQL API max is 100 per request
    branch_protection_page_size: int = 5
    milestone_page_size: int = 30
    page_delay_seconds: float = 5.0  # Pause between pages to stay under rate limits
    request_timeout: int = 30
    request_attempts: int = 1  # 1 disables transport retries
    include_private: bool = False
    skip_invalid_records: bool = False
    output_file: str = "all-repos.json"

    class Config:
        env_file = ".env"

settings = Settings()
