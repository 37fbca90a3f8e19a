"""관리 API 역할 상수입니다."""

ADMIN = "admin"
EDITOR = "editor"
VIEWER = "viewer"

# 콘텐츠 엔트리를 쓰고 지울 수 있는 역할
WRITE_ROLES = (ADMIN, EDITOR)
