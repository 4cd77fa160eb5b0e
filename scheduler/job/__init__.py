"""
잡 본문 패키지

하위 모듈은 @job 데코레이터로 등록되며 JobRegistry.default()가 모두 로드합니다.
"""
