"""
统一异常体系。

所有业务异常继承 BaseAppException，包含：
- type:        错误类型标识（validation_error / block / unavailable / ...）
- code:        业务错误码（INVALID_AMOUNT / PATIENT_NOT_FOUND / ...）
- message:     人类可读的描述
- detail:      可选的附加信息（dict / list / None）
- http_status: HTTP 状态码

View 层只需 raise，exception_handler 统一捕获并格式化响应。
"""


class BaseAppException(Exception):
    """所有业务异常的基类。"""

    type = 'error'
    code = 'UNKNOWN_ERROR'
    http_status = 500

    def __init__(self, message, code=None, detail=None, http_status=None):
        self.message = message
        if code is not None:
            self.code = code
        if http_status is not None:
            self.http_status = http_status
        self.detail = detail
        super().__init__(message)


class ValidationError(BaseAppException):
    """输入验证失败（付款参数 / 原始文档格式），400。"""

    type = 'validation_error'
    code = 'VALIDATION_ERROR'
    http_status = 400


class BlockError(BaseAppException):
    """业务规则阻止操作。service 层抛出，409。"""

    type = 'block'
    code = 'BUSINESS_BLOCK'
    http_status = 409


class PatientNotFound(BlockError):
    code = 'PATIENT_NOT_FOUND'
    http_status = 404

    def __init__(self, patient_id):
        super().__init__(
            message=f"Patient {patient_id!r} not found",
            detail={'patient_id': str(patient_id)},
        )


class AmbiguousMatchError(BaseAppException):
    """
    诊断信息，不会被 raise。

    一条记录在 tier 1 没有命中任何患者，却在 tier 2/3 同时命中多个患者。
    这条记录会从所有患者的账本里排除，而不是随便挂到第一个患者身上。
    """

    type = 'warning'
    code = 'AMBIGUOUS_MATCH'
    http_status = 409

    def __init__(self, source_id, tier, candidate_ids):
        self.source_id = source_id
        self.tier = tier
        self.candidate_ids = tuple(candidate_ids)
        super().__init__(
            message=(
                f"Record {source_id!r} matches {len(self.candidate_ids)} patients "
                f"by {tier}; excluded from every ledger"
            ),
            detail={
                'source_id': source_id,
                'tier': tier,
                'candidate_ids': list(self.candidate_ids),
            },
        )


class CollaboratorUnavailable(BaseAppException):
    """外部存储读写失败。可恢复，调用方不应崩溃。"""

    type = 'unavailable'
    code = 'STORE_UNAVAILABLE'
    http_status = 503
