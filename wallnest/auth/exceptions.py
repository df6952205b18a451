from wallnest.exceptions import ForbiddenException, UnauthorizedException


class InvalidCredentialsException(UnauthorizedException):
    default_detail = "Incorrect username or password"


class TokenNotValidException(UnauthorizedException):
    default_detail = "Token is invalid or has expired"


class InactiveUserException(ForbiddenException):
    default_detail = "This account has been disabled"


class AdminRequiredException(ForbiddenException):
    default_detail = "Administrator privileges required"
