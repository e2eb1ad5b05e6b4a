def maskSecret(value: str | None) -> str | None:
    """
    Назначение:
        Маскирует секреты (токен каталога) для безопасного вывода в stdout/logs.

    Выходные данные:
        str | None
            Если value задано, то '***', иначе None.
    """
    if value is None:
        return None
    return "***"


def truncateText(value: str | None, limit: int = 500) -> str | None:
    """
    Назначение:
        Ограничивает длину текста, чтобы не раздувать логи и сообщения об ошибках.
    """
    if value is None:
        return None
    if len(value) <= limit:
        return value
    suffix = "..." if limit > 3 else ""
    head = limit - len(suffix)
    return value[:head] + suffix
