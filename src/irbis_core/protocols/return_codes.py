# src/irbis_core/protocols/return_codes.py
"""
IRBIS 协议层 - 返回码表 (Return Codes)

服务器在每个响应的包头之后给出一个有符号整数返回码。
负值表示错误或 "替代结果"，非负值常被复用为有效负载 (例如最大 MFN)。
"""

from types import MappingProxyType

UNKNOWN_ERROR = "unknown error"

# 服务器原始描述 (俄文)，与服务器文档保持一致
_DESCRIPTIONS = {
    -100: "Заданный MFN вне пределов БД",
    -101: "Ошибочный размер полки",
    -102: "Ошибочный номер полки",
    -140: "MFN вне пределов БД",
    -141: "Ошибка чтения",
    -200: "Указанное поле отсутствует",
    -201: "Предыдущая версия записи отсутствует",
    -202: "Заданный термин не найден (термин не существует)",
    -203: "Последний термин в списке",
    -204: "Первый термин в списке",
    -300: "База данных монопольно заблокирована",
    -301: "База данных монопольно заблокирована",
    -400: "Ошибка при открытии файлов MST или XRF (ошибка файла данных)",
    -401: "Ошибка при открытии файлов IFP (ошибка файла индекса)",
    -402: "Ошибка при записи",
    -403: "Ошибка при актуализации",
    -600: "Запись логически удалена",
    -601: "Запись физически удалена",
    -602: "Запись заблокирована на ввод",
    -603: "Запись логически удалена",
    -605: "Запись физически удалена",
    -607: "Ошибка autoin.gbl",
    -608: "Ошибка версии записи",
    -700: "Ошибка создания резервной копии",
    -701: "Ошибка восстановления из резервной копии",
    -702: "Ошибка сортировки",
    -703: "Ошибочный термин",
    -704: "Ошибка создания словаря",
    -705: "Ошибка загрузки словаря",
    -800: "Ошибка в параметрах глобальной корректировки",
    -801: "ERR_GBL_REP",
    -802: "ERR_GBL_MET",
    -1111: "Ошибка исполнения сервера (SERVER_EXECUTE_ERROR)",
    -2222: "Ошибка в протоколе (WRONG_PROTOCOL)",
    -3333: "Незарегистрированный клиент (ошибка входа на сервер) (клиент не в списке)",
    -3334: "Клиент не выполнил вход на сервер (клиент не используется)",
    -3335: "Неправильный уникальный идентификатор клиента",
    -3336: "Нет доступа к командам АРМ",
    -3337: "Клиент уже зарегистрирован",
    -3338: "Недопустимый клиент",
    -4444: "Неверный пароль",
    -5555: "Файл не существует",
    -6666: "Сервер перегружен. Достигнуто максимальное число потоков обработки",
    -7777: "Не удалось запустить/прервать поток администратора (ошибка процесса)",
    -8888: "Общая ошибка",
}

ERROR_DESCRIPTIONS = MappingProxyType(_DESCRIPTIONS)

# 客户端已注册 (connect 时需要更换 client id 重试)
CLIENT_ALREADY_REGISTERED = -3337

# 读取记录时可接受的返回码：记录存在但不可用，而非 "不存在"
READ_RECORD_CODES = frozenset({-201, -600, -602, -603})

# 读取词典时可接受的返回码：词条不存在 / 列表末尾 / 列表开头
READ_TERMS_CODES = frozenset({-202, -203, -204})


def describe_error(code: int) -> str:
    """获取返回码对应的人类可读描述。

    Args:
        code: 服务器返回码。

    Returns:
        str: 返回码表中的描述；未收录的返回码返回 "unknown error"。
    """
    if code >= 0:
        return "Нормальное завершение"
    return ERROR_DESCRIPTIONS.get(code, UNKNOWN_ERROR)
