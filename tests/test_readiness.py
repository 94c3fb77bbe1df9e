"""
Tests for the go-live readiness script.
"""

from scripts.check_go_live_readiness import find_issues, main

READY_ENV = {
    "NEXT_PUBLIC_SUPABASE_URL": "https://abc.supabase.co",
    "NEXT_PUBLIC_SUPABASE_ANON_KEY": "anon",
    "SUPABASE_SERVICE_ROLE_KEY": "service",
    "DATABASE_URL": "postgresql://localhost/collabpost",
    "NEXT_PUBLIC_APP_URL": "https://app.example.com",
    "TWITTER_CLIENT_ID": "tw-id",
    "TWITTER_CLIENT_SECRET": "tw-secret",
    "LINKEDIN_CLIENT_ID": "li-id",
    "LINKEDIN_CLIENT_SECRET": "li-secret",
}


def write_env(tmp_path, values):
    path = tmp_path / ".env.production"
    path.write_text("".join(f"{key}={value}\n" for key, value in values.items()))
    return str(path)


class TestFindIssues:

    def test_complete_env_has_no_issues(self):
        assert find_issues(READY_ENV) == []

    def test_missing_base_vars_are_listed_in_order(self):
        env = dict(READY_ENV, DATABASE_URL="", NEXT_PUBLIC_SUPABASE_URL=None)
        assert find_issues(env) == [
            "Missing base env vars: NEXT_PUBLIC_SUPABASE_URL, DATABASE_URL",
        ]

    def test_missing_oauth_vars(self):
        env = {k: v for k, v in READY_ENV.items() if not k.startswith("LINKEDIN")}
        assert find_issues(env) == [
            "Missing publish-now OAuth vars: LINKEDIN_CLIENT_ID, LINKEDIN_CLIENT_SECRET",
        ]

    def test_app_url_needs_protocol(self):
        env = dict(READY_ENV, NEXT_PUBLIC_APP_URL="app.example.com")
        assert find_issues(env) == [
            "NEXT_PUBLIC_APP_URL must include protocol, e.g. https://app.example.com",
        ]

    def test_every_problem_is_reported(self):
        issues = find_issues({"NEXT_PUBLIC_APP_URL": "ftp://files"})
        assert len(issues) == 3


class TestMain:

    def test_passes(self, tmp_path, capsys):
        code = main(["--env-file", write_env(tmp_path, READY_ENV)])

        out = capsys.readouterr().out
        assert code == 0
        assert "Go-live readiness check passed." in out
        assert "App URL: https://app.example.com" in out
        assert "Publish-now platforms: X (Twitter), LinkedIn" in out

    def test_fails_with_issue_list(self, tmp_path, capsys):
        env = dict(READY_ENV, TWITTER_CLIENT_SECRET="")

        code = main(["--env-file", write_env(tmp_path, env)])

        err = capsys.readouterr().err
        assert code == 1
        assert err.splitlines() == [
            "Go-live readiness check failed:",
            "- Missing publish-now OAuth vars: TWITTER_CLIENT_SECRET",
        ]

    def test_missing_file(self, tmp_path, capsys):
        missing = str(tmp_path / "nope.env")

        code = main(["--env-file", missing])

        assert code == 1
        assert f"Missing {missing} file." in capsys.readouterr().err
