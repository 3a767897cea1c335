from enum import Enum


class AccountPlanEnum(str, Enum):
    basic = "basic"
    pro = "pro"
    enterprise = "enterprise"
