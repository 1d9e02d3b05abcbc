from __future__ import annotations

from privacy_footprint.models import AccountCategory
from privacy_footprint.rules.BaseRule import SubjectKeywordRule


class SignupRule(SubjectKeywordRule):
    name = "signup"
    priority = 300
    category = AccountCategory.SIGNUP
    keywords = (
        "가입",
        "회원",
        "signup",
        "sign up",
        "welcome",
        "verify",
        "confirmation",
    )


class ReceiptRule(SubjectKeywordRule):
    name = "receipt"
    priority = 200
    category = AccountCategory.RECEIPT
    keywords = (
        "영수증",
        "결제",
        "주문",
        "receipt",
        "invoice",
        "order",
    )


class AuthenticationRule(SubjectKeywordRule):
    name = "authentication"
    priority = 100
    category = AccountCategory.AUTHENTICATION
    keywords = (
        "인증",
        "비밀번호",
        "auth",
        "password",
        "verify",
        "code",
    )
