"""
Send e-mails when GitHub repositories publish new releases

``ghrelease`` checks the latest release of each repository you give it and
e-mails you when one shows up that it has not told you about before.  It keeps
a small state file between runs, so it only ever e-mails about a release once,
and it uses conditional requests so that unchanged repositories cost next to
nothing against your API rate limit.  Run it from cron or another job
scheduler; each invocation makes a single pass over the repository list.
"""

__version__ = "0.1.0"
__license__ = "MIT"
__url__ = "https://github.com/ghrelease/ghrelease"
