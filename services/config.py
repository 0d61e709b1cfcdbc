# services/config.py

# 읽기 시간 계산 기준 (분당 단어 수)
WORDS_PER_MINUTE = 200

# 목록/검색 페이지 크기
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

# slug 충돌 시 재생성 최대 횟수 (첫 시도 포함)
SLUG_MAX_ATTEMPTS = 3
SLUG_FALLBACK = "post"
# 다른 작성자가 쓰기 lock 을 잡고 있을 때 재시도 간격(초, 시도마다 늘어남)
LOCK_RETRY_DELAY = 0.05

# 상태값
POST_STATUSES = ("DRAFT", "PENDING", "PUBLISHED", "ARCHIVED")
DEFAULT_POST_STATUS = "DRAFT"
DEFAULT_LIST_STATUS = "PUBLISHED"

# 현재는 자동 승인
DEFAULT_COMMENT_STATUS = "APPROVED"

# 회원가입 기본 권한
DEFAULT_USER_ROLE = "READER"

# seed.py 기본 카테고리
DEFAULT_CATEGORIES = [
    {"name": "Technology", "description": "Articles about technology, programming, and software development"},
    {"name": "Web Development", "description": "Web development tutorials, tips, and best practices"},
    {"name": "JavaScript", "description": "JavaScript tutorials, frameworks, and libraries"},
    {"name": "Python", "description": "Python guides, libraries, and tooling"},
    {"name": "DevOps", "description": "DevOps, CI/CD, and deployment strategies"},
    {"name": "Database", "description": "Database design, SQL, and NoSQL databases"},
]
