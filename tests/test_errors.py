from __future__ import annotations

from githubsync.errors import (
    ConfigurationError,
    GitHubAPIError,
    GitHubSyncError,
    InternalInconsistencyError,
    RequestError,
    classify_error,
    redact,
)


def test_classify_rate_limit():
    info = classify_error(GitHubAPIError('API Rate Limit Exceeded', status=403))
    assert info.category == 'github.rate_limit'
    assert info.transient is True


def test_classify_abuse():
    info = classify_error(RuntimeError('Abuse detection triggered'))
    assert info.category == 'github.abuse'
    assert info.transient is True


def test_classify_network():
    assert classify_error(RuntimeError('Connection reset by peer')).category == 'network'
    info = classify_error(RequestError('TLS handshake failed'))
    assert info.category == 'network'
    assert info.transient is True


def test_classify_api_error_keeps_status():
    info = classify_error(GitHubAPIError('Not Found', status=404))
    assert info.category == 'github.api'
    assert info.transient is False
    assert info.details == {'status': 404}


def test_classify_generic():
    info = classify_error(ValueError('Some other problem'))
    assert info.category == 'generic'
    assert info.original_type == 'ValueError'


def test_redact_tokens():
    sample = (
        'Token ghp_ABCDEFGHIJKLMNOPQRSTUVWX plus github_pat_1234567890abcdefghijkl '
        'and gho_ABCDEFGHIJKLMNOPQRSTUVWX'
    )
    out = redact(sample)
    assert 'ghp_' not in out
    assert 'github_pat_' not in out
    assert 'gho_' not in out
    assert out.count('<redacted>') == 3


def test_redact_leaves_plain_text_alone():
    assert redact('nothing secret here') == 'nothing secret here'
    assert redact('') == ''


def test_exit_codes():
    assert GitHubSyncError('x').code == 1
    assert GitHubSyncError('x', code=9).code == 9
    assert ConfigurationError('x').code == 2
    assert InternalInconsistencyError('x').code == 70
    assert GitHubAPIError('x', status=500).code == 1
