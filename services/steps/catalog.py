"""
Built-in step catalog.
"""

from .registry import StepDefinition, StepRegistry
from .ai import generate_image, generate_text
from .database import database_query
from .http import http_request
from .messaging import send_email, send_slack_message
from .tickets import create_ticket


BUILTIN_STEPS = [
    (StepDefinition(
        action_type="HTTP Request",
        handler=http_request,
        function_name="http_request",
        import_path="services.steps.http",
        arguments={"endpoint": "endpoint", "httpMethod": "method", "httpHeaders": "headers", "httpBody": "body"},
        description="Call an HTTP endpoint",
    ), ["http/request"]),
    (StepDefinition(
        action_type="Send Email",
        handler=send_email,
        function_name="send_email",
        import_path="services.steps.messaging",
        arguments={
            "emailTo": "email_to",
            "emailSubject": "email_subject",
            "emailBody": "email_body",
            "resendFromEmail": "email_from",
        },
        credentials={"RESEND_API_KEY": "api_key"},
        integration="resend",
        description="Send an email through Resend",
    ), ["resend/send-email"]),
    (StepDefinition(
        action_type="Send Slack Message",
        handler=send_slack_message,
        function_name="send_slack_message",
        import_path="services.steps.messaging",
        arguments={"slackChannel": "slack_channel", "slackMessage": "slack_message"},
        credentials={"SLACK_API_KEY": "api_key"},
        integration="slack",
        description="Post a message to a Slack channel",
    ), ["slack/send-message"]),
    (StepDefinition(
        action_type="Create Ticket",
        handler=create_ticket,
        function_name="create_ticket",
        import_path="services.steps.tickets",
        arguments={
            "ticketTitle": "ticket_title",
            "ticketDescription": "ticket_description",
            "ticketPriority": "ticket_priority",
        },
        credentials={"LINEAR_API_KEY": "api_key", "LINEAR_TEAM_ID": "team_id"},
        integration="linear",
        description="Create a Linear issue",
    ), ["linear/create-ticket", "Find Issues", "linear/find-issues"]),
    (StepDefinition(
        action_type="Generate Text",
        handler=generate_text,
        function_name="generate_text",
        import_path="services.steps.ai",
        arguments={"aiPrompt": "ai_prompt", "aiModel": "ai_model"},
        credentials={"OPENAI_API_KEY": "api_key"},
        integration="openai",
        description="Generate text with a language model",
    ), ["ai-gateway/generate-text"]),
    (StepDefinition(
        action_type="Generate Image",
        handler=generate_image,
        function_name="generate_image",
        import_path="services.steps.ai",
        arguments={"imagePrompt": "image_prompt", "imageModel": "image_model"},
        credentials={"OPENAI_API_KEY": "api_key"},
        integration="openai",
        description="Generate an image from a prompt",
    ), ["ai-gateway/generate-image"]),
    (StepDefinition(
        action_type="Database Query",
        handler=database_query,
        function_name="database_query",
        import_path="services.steps.database",
        arguments={"dbQuery": "db_query"},
        credentials={"DATABASE_URL": "database_url"},
        integration="database",
        description="Run a SQL statement",
    ), ["database/query"]),
]


def default_registry() -> StepRegistry:
    """Registry holding every built-in step, validated"""
    registry = StepRegistry()
    for definition, aliases in BUILTIN_STEPS:
        registry.register(definition, aliases=aliases)
    registry.validate()
    return registry
