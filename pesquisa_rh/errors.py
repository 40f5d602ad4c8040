class ServiceError(Exception):
    """Base error for everything the data-access and form services raise."""
    status_code = 500
    retryable = False

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details


class ConnectionFailure(ServiceError):
    """Supabase unreachable. The user may retry."""
    status_code = 503
    retryable = True


class ValidationFailure(ServiceError):
    status_code = 400


class NotFound(ServiceError):
    status_code = 404


class PermissionDenied(ServiceError):
    status_code = 403


class DuplicateSubmission(ServiceError):
    status_code = 409


class NothingToExport(ServiceError):
    status_code = 400


class ErrorMessages:
    CONNECTION = "Erro de conexão com o servidor. Verifique sua conexão com a internet e tente novamente."
    TABLE_NOT_FOUND = "Tabela não encontrada. Verifique se o banco de dados foi configurado corretamente."
    PERMISSION = "Sem permissão para acessar os dados. Verifique suas credenciais."
    EMPRESA_NOT_FOUND = "Empresa não identificada."
    FORMULARIO_NOT_FOUND = "Formulário não encontrado."
    FORMULARIO_INATIVO = "Este formulário não está disponível para respostas."
    FORMULARIO_NOME = "Nome do formulário é obrigatório."
    FORMULARIO_PERGUNTAS = "Pelo menos uma pergunta é obrigatória."
    FUNCIONARIO_NOT_FOUND = "Funcionário não encontrado."
    FUNCIONARIO_INATIVO = "Funcionário inativo não pode responder formulários."
    RESPOSTAS_INCOMPLETAS = "Por favor, responda todas as perguntas antes de enviar."
    RESPOSTA_INVALIDA = "As respostas devem estar entre 1 e 5."
    JA_RESPONDEU = "Este funcionário já respondeu este formulário."
    TOKEN_INVALIDO = "Link inválido ou expirado."
    NADA_PARA_EXPORTAR = "Não há dados para exportar."
    CREDENCIAIS = "Email ou senha incorretos."
    ARQUIVO_INVALIDO = "O arquivo deve ser CSV ou XLSX."
