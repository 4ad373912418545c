from datetime import timedelta

import pytest

import services.auth.handlers as handlers_module
from services.auth.commands import ResendVerificationEmailCommand, VerifyEmailCommand
from services.auth.handlers import ResendVerificationEmailHandler, VerifyEmailHandler
from services.exceptions import EmailSendError, RateLimitError
from utils.security import hash_token, utcnow


class TestResendVerificationEmailHandler:
    @pytest.fixture
    def handler(self, storage, email_service):
        return ResendVerificationEmailHandler(storage, email_service)

    def test_unknown_email_is_silent(self, handler, email_service):
        handler.handle(ResendVerificationEmailCommand("nobody@test.com"))
        email_service.send_verification_email.assert_not_called()

    def test_verified_user_is_silent(self, handler, email_service, make_user):
        make_user(email="done@test.com", email_verified=True)
        handler.handle(ResendVerificationEmailCommand("done@test.com"))
        email_service.send_verification_email.assert_not_called()

    def test_replaces_verification_token(self, handler, storage, email_service, make_user):
        make_user(
            email="new@test.com",
            email_verified=False,
            email_verification_token_hash=hash_token("old-token"),
            email_verification_expires=utcnow() + timedelta(hours=1),
        )

        handler.handle(ResendVerificationEmailCommand("new@test.com"))

        raw_token = email_service.send_verification_email.call_args.args[2]
        user = storage.find_user_by_email("new@test.com")
        assert user.email_verification_token_hash == hash_token(raw_token)
        assert user.last_security_email_sent_at is not None

        # the previous link no longer works, the new one does
        assert storage.find_user_by_verification_token(hash_token("old-token")) is None
        VerifyEmailHandler(storage).handle(VerifyEmailCommand(raw_token))
        assert storage.find_user_by_email("new@test.com").email_verified is True

    def test_cooldown_then_success(self, handler, email_service, make_user, monkeypatch):
        make_user(email="new@test.com", email_verified=False)
        handler.handle(ResendVerificationEmailCommand("new@test.com"))

        with pytest.raises(RateLimitError) as exc_info:
            handler.handle(ResendVerificationEmailCommand("new@test.com"))
        assert 0 < exc_info.value.retry_after_seconds <= 300

        later = utcnow() + timedelta(minutes=5, seconds=1)
        monkeypatch.setattr(handlers_module, "utcnow", lambda: later)
        handler.handle(ResendVerificationEmailCommand("new@test.com"))

        assert email_service.send_verification_email.call_count == 2

    def test_mail_failure_propagates(self, handler, email_service, make_user):
        make_user(email="new@test.com", email_verified=False)
        email_service.send_verification_email.side_effect = EmailSendError("new@test.com")
        with pytest.raises(EmailSendError):
            handler.handle(ResendVerificationEmailCommand("new@test.com"))
