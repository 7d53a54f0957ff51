"""
Tests for the page-state classifier.
"""

import pytest

from scrapers.base import ErrorCode
from scrapers.classifier import classify_page, page_text, url_matches_target


PROFILE_HTML = """
<html><body>
  <div data-testid="primaryColumn">
    <div data-testid="UserName"><span>NASA</span><span>@NASA</span></div>
    <article data-testid="tweet"><div data-testid="tweetText">Liftoff!</div></article>
  </div>
</body></html>
"""


def page(body: str) -> str:
    return f"<html><body><main>{body}</main></body></html>"


class TestClassifyPage:
    """Test ordered page-state classification."""

    def test_normal_profile_is_valid(self):
        outcome = classify_page("https://x.com/NASA", PROFILE_HTML, "nasa")

        assert outcome.valid is True
        assert outcome.code is None

    @pytest.mark.parametrize("url", [
        "https://x.com/login",
        "https://x.com/i/flow/login?redirect_after_login=%2FNASA",
        "https://x.com/i/flow/signup",
    ])
    def test_auth_redirect_regardless_of_content(self, url):
        html = page("These posts are protected. Rate limit exceeded.")

        outcome = classify_page(url, html, "nasa")

        assert outcome.valid is False
        assert outcome.code == ErrorCode.AUTH_REQUIRED

    @pytest.mark.parametrize("phrase", [
        "Rate limit exceeded",
        "You are rate limited",
        "Too many requests",
        "Your account is temporarily restricted",
        "Something went wrong. Try again later.",
    ])
    def test_rate_limited(self, phrase):
        outcome = classify_page("https://x.com/nasa", page(phrase), "nasa")

        assert outcome.code == ErrorCode.RATE_LIMITED

    def test_rate_limit_wins_over_suspension(self):
        html = page("Account suspended. Too many requests.")

        outcome = classify_page("https://x.com/nasa", html, "nasa")

        assert outcome.code == ErrorCode.RATE_LIMITED

    def test_suspended_on_target(self):
        html = page("Account suspended. X suspends accounts which violate the X Rules.")

        outcome = classify_page("https://x.com/SpamBot", html, "spambot")

        assert outcome.code == ErrorCode.SUSPENDED

    def test_suspension_text_off_target_is_ignored(self):
        html = page('Account suspended <div data-testid="primaryColumn"></div>')

        outcome = classify_page("https://x.com/home", html, "spambot")

        assert outcome.valid is True

    def test_not_found_on_target(self):
        html = page("This account doesn’t exist. Try searching for another.")

        outcome = classify_page("https://x.com/nobody_here_123", html, "nobody_here_123")

        assert outcome.code == ErrorCode.NOT_FOUND

    def test_not_found_on_generic_route(self):
        html = page("Hmm...this page doesn't exist. Try searching for something else.")

        outcome = classify_page("https://x.com/i/notfound", html, "nobody_here_123")

        assert outcome.code == ErrorCode.NOT_FOUND

    def test_not_found_text_elsewhere_is_ignored(self):
        html = page("Trending: page not found memes")

        outcome = classify_page("https://x.com/explore", html, "nasa")

        assert outcome.valid is True

    def test_protected_on_target(self):
        html = page('<div data-testid="UserName">@private</div> These tweets are protected.')

        outcome = classify_page("https://x.com/private", html, "private")

        assert outcome.code == ErrorCode.PROTECTED

    def test_protected_regardless_of_url(self):
        html = page("These posts are protected. Only approved followers can see posts.")

        outcome = classify_page("https://x.com/someone_else", html, "private")

        assert outcome.code == ErrorCode.PROTECTED

    def test_profile_load_failed(self):
        html = page("Loading...")

        outcome = classify_page("https://x.com/nasa", html, "nasa")

        assert outcome.code == ErrorCode.PROFILE_LOAD_FAILED

    def test_handle_text_counts_as_profile_marker(self):
        html = page("NASA @NASA Explore the universe")

        outcome = classify_page("https://x.com/nasa", html, "nasa")

        assert outcome.valid is True

    def test_script_content_is_not_page_text(self):
        html = PROFILE_HTML.replace("</body>", "<script>var e = 'rate limit exceeded';</script></body>")

        outcome = classify_page("https://x.com/nasa", html, "nasa")

        assert outcome.valid is True

    def test_target_given_as_url(self):
        outcome = classify_page("https://x.com/NASA", PROFILE_HTML, "https://twitter.com/nasa")

        assert outcome.valid is True


class TestHelpers:
    """Test URL matching and text extraction."""

    def test_url_match_is_case_insensitive(self):
        assert url_matches_target("https://x.com/NASA/with_replies", "nasa")
        assert url_matches_target("https://x.com/nasa", "@NASA")

    def test_url_mismatch(self):
        assert not url_matches_target("https://x.com/home", "nasa")
        assert not url_matches_target("https://x.com/", "nasa")
        assert not url_matches_target("https://x.com/nasa", "")

    def test_page_text_normalizes_apostrophes(self):
        assert "doesn't" in page_text(page("This account doesn’t exist"))
