"""Release actions exceptions.

カスタム例外クラスを定義します。
"""


class ReleaseActionError(Exception):
    """アクション実行時のエラーの基底クラス."""


class ActionInputError(ReleaseActionError):
    """入力値が不正で、個別処理を始める前に実行全体を中断する例外.

    必須入力の欠落、JSONのパース失敗、`owner/repo` 形式の不一致などで送出します。

    Attributes:
        input_name: 問題のある入力名（特定できない場合は None）
    """

    def __init__(self, message: str, input_name: str | None = None) -> None:
        """例外初期化.

        Args:
            message: エラーメッセージ
            input_name: 問題のある入力名
        """
        self.input_name = input_name
        super().__init__(message)


class ChecksumUnavailableError(ReleaseActionError):
    """サイドカーファイルからも本体からもチェックサムを得られなかった例外.

    バッチ処理側はこの例外を警告として扱い、該当アセットのみチェックサムなしで続行します。

    Attributes:
        reference: 対象のローカルパスまたはURL
    """

    def __init__(self, reference: str, reason: str) -> None:
        self.reference = reference
        self.reason = reason
        super().__init__(f"Checksum unavailable for {reference}: {reason}")
